# planner.py
"""
Topic tracking and follow-up prompt generation for automated dialogues.

Everything here is plain text processing: no page access. Randomness comes from
an injectable ``random_source`` returning floats in [0, 1).
"""

import random
import re
from collections import Counter
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

DEFAULT_TOPIC = "general"

STOPWORDS = {
    "the", "and", "a", "an", "in", "on", "at", "to", "for", "of", "with",
    "is", "are", "was", "were", "it", "its", "that", "this", "these", "those",
    "be", "by", "as", "has", "have", "had", "over", "from", "but", "not",
    "you", "your", "can", "will", "they", "their", "into", "also", "than",
    "then", "been",
}

# Declaration order is the tie-break: the first category with any overlap wins.
TOPIC_CATEGORIES: Dict[str, List[str]] = {
    "weather": ["weather", "temperature", "forecast", "rain", "snow", "storm"],
    "travel": ["zurich", "city", "location", "visit", "tourist", "travel", "destination"],
    "technology": ["computer", "software", "hardware", "code", "programming", "algorithm"],
    "science": ["research", "study", "experiment", "discovery", "scientific", "data"],
    "history": ["historical", "past", "event", "war", "revolution", "period"],
    "culture": ["art", "music", "film", "literature", "tradition", "custom"],
    "health": ["medical", "doctor", "hospital", "disease", "treatment", "health"],
    "food": ["restaurant", "cooking", "recipe", "dish", "cuisine", "meal"],
}

# A template is either a plain format string or (format string, choices for {choice}).
Template = Union[str, Tuple[str, Sequence[str]]]

STAY_PROMPTS: Dict[str, List[Template]] = {
    "weather": [
        "What factors contribute to the {keyword} patterns in this region?",
        "How does {keyword} affect daily life here?",
        "Are there any interesting {keyword}-related phenomena?",
    ],
    "travel": [
        "What makes {keyword} special compared to other places?",
        "What are some hidden gems in or near {keyword}?",
        "How has {keyword} changed over time?",
    ],
    "technology": [
        "What are the latest developments in {keyword}?",
        "How is {keyword} impacting other industries?",
        "What challenges does {keyword} currently face?",
    ],
    "science": [
        "What recent {keyword} discoveries excite you?",
        "How does {keyword} research benefit society?",
        "What are the biggest questions in {keyword} today?",
    ],
    "history": [
        "What lesser-known {keyword} events are interesting?",
        "How does {keyword} shape our present?",
        "What can we learn from {keyword}?",
    ],
    "culture": [
        "What unique {keyword} traditions exist?",
        "How has {keyword} evolved over time?",
        "What are some famous figures in {keyword}?",
    ],
    "health": [
        "What are the latest {keyword} breakthroughs?",
        "How can we improve {keyword} awareness?",
        "What are common misconceptions about {keyword}?",
    ],
    "food": [
        "What traditional {keyword} dishes are popular?",
        "How has {keyword} culture influenced other cuisines?",
        "What are some unique {keyword} ingredients?",
    ],
    "general": [
        "Could you tell me more about {keyword}?",
        "What are the key aspects of {keyword} and {second_keyword}?",
        "How does {keyword} connect to other areas?",
    ],
}

TRANSITION_PROMPTS: Dict[str, List[Template]] = {
    "weather": [
        ("Speaking of {keyword}, do you have any favorite {choice} related to this?", ("books", "movies", "places")),
        ("Does {keyword} remind you of any interesting {choice}?", ("stories", "experiences", "events")),
        "What's something completely different that you find fascinating?",
    ],
    "travel": [
        "Besides {keyword}, what other destinations interest you?",
        "Do you have any hobbies unrelated to travel?",
        "What's a fascinating fact about something completely different?",
    ],
    "technology": [
        "Beyond technology, what other fields interest you?",
        "What's something in nature that amazes you?",
        ("Do you have any favorite {choice}?", ("books", "movies", "art forms")),
    ],
    "science": [
        "Outside of science, what captures your attention?",
        "What's a historical event that you find intriguing?",
        ("Do you enjoy any creative activities like {choice}?", ("writing", "painting", "music")),
    ],
    "history": [
        "Moving beyond history, what modern topics interest you?",
        "What's something in the natural world that fascinates you?",
        ("Do you have any favorite {choice}?", ("novels", "films", "artworks")),
    ],
    "culture": [
        "Beyond cultural topics, what else do you enjoy learning about?",
        "What scientific discoveries do you find most interesting?",
        "Do you have any favorite places to visit or explore?",
    ],
    "health": [
        "Outside of health topics, what other subjects interest you?",
        "What technological advancements do you find most exciting?",
        ("Do you have any favorite {choice}?", ("books", "movies", "hobbies")),
    ],
    "food": [
        "Beyond food, what other topics do you enjoy discussing?",
        "What's something in nature that you find fascinating?",
        ("Do you have any favorite {choice} topics?", ("historical", "scientific", "cultural")),
    ],
    "general": [
        "What's something completely different you'd like to talk about?",
        ("Do you have any favorite {choice}?", ("books", "movies", "hobbies")),
        "What's a fascinating fact about something unexpected?",
    ],
}

_PUNCTUATION = re.compile(r"[^\w]")


def extract_keywords(text: Optional[str], limit: int = 5) -> List[str]:
    """
    Return the ``limit`` most frequent content words of ``text``.
    Ties keep first-occurrence order.
    """
    if not text:
        return []
    words = (_PUNCTUATION.sub("", word) for word in text.lower().split())
    counts = Counter(word for word in words if len(word) > 2 and word not in STOPWORDS)
    return [word for word, _ in counts.most_common(limit)]


def categorize_topic(keywords: Sequence[str]) -> str:
    keyword_set = set(keywords)
    for category, category_words in TOPIC_CATEGORIES.items():
        if keyword_set.intersection(category_words):
            return category
    return DEFAULT_TOPIC


def classify_reply(text: Optional[str]) -> str:
    return categorize_topic(extract_keywords(text))


def word_count(text: Optional[str]) -> int:
    return len(text.split()) if text else 0


class FollowUpPlanner:
    """Chooses the next prompt of an automated dialogue from the previous reply."""

    def __init__(self, random_source: Optional[Callable[[], float]] = None):
        self._random = random_source or random.random

    def _pick(self, options: Sequence):
        index = int(self._random() * len(options))
        return options[min(max(index, 0), len(options) - 1)]

    def should_transition(self, turn_index: int, previous_reply: Optional[str]) -> bool:
        """
        Leave the current topic every fourth turn, occasionally after turn 5,
        and whenever replies get short after turn 3.
        """
        if turn_index % 4 == 0:
            return True
        if turn_index > 5 and self._random() > 0.7:
            return True
        return word_count(previous_reply) < 15 and turn_index > 3

    def _render(self, template: Template, keywords: List[str]) -> str:
        keyword = keywords[0] if keywords else "this topic"
        second_keyword = keywords[1] if len(keywords) > 1 else keyword
        choice = ""
        if isinstance(template, tuple):
            template, choices = template
            choice = self._pick(choices)
        return template.format(keyword=keyword, second_keyword=second_keyword, choice=choice)

    def next_prompt(self, turn_index: int, topic: str, previous_reply: Optional[str]) -> str:
        keywords = extract_keywords(previous_reply)[:2]
        if self.should_transition(turn_index, previous_reply):
            table = TRANSITION_PROMPTS
        else:
            table = STAY_PROMPTS
        templates = table.get(topic) or table[DEFAULT_TOPIC]
        return self._render(self._pick(templates), keywords)
