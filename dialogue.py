# dialogue.py
import threading
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from errors import TurnFailed, format_error
from executor import TurnExecutor
from planner import DEFAULT_TOPIC, FollowUpPlanner, classify_reply
from tracing import debug

DEFAULT_MAX_TURNS = 30
DEFAULT_TURN_PAUSE = 2.0


@dataclass(frozen=True)
class Turn:
    index: int
    prompt: str
    response: Optional[str]


@dataclass(frozen=True)
class SkippedTurn:
    index: int
    prompt: str
    error: str


class TurnOutcome(Enum):
    COMPLETED = "completed"
    SKIPPED = "skipped"


@dataclass
class DialogueState:
    initial_prompt: str
    max_turns: int
    turns: List[Turn] = field(default_factory=list)
    skipped: List[SkippedTurn] = field(default_factory=list)
    current_topic: str = DEFAULT_TOPIC
    active: bool = True
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def record(self, turn: Turn) -> None:
        if len(self.turns) >= self.max_turns:
            raise RuntimeError(f"dialogue already holds {self.max_turns} turns")
        self.turns.append(turn)

    def last_reply(self) -> Optional[str]:
        for turn in reversed(self.turns):
            if turn.response:
                return turn.response
        return None


@dataclass
class DialogueResult:
    initial_prompt: str
    turns: List[Turn]
    final_topic: str
    completed_turns: int
    max_turns: int
    skipped: List[SkippedTurn] = field(default_factory=list)
    cancelled: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dialogue": {
                "initialPrompt": self.initial_prompt,
                "responses": [
                    {"turn": t.index, "prompt": t.prompt, "response": t.response} for t in self.turns
                ],
            },
            "skippedTurns": [asdict(s) for s in self.skipped],
            "completedTurns": self.completed_turns,
            "maxTurns": self.max_turns,
            "status": "cancelled" if self.cancelled else "completed",
            "finalTopic": self.final_topic,
        }


class DialogueOrchestrator:
    """
    Drives an open-ended conversation: one initial prompt, then generated
    follow-ups until ``max_turns`` is reached or ``cancel`` is set.

    The first turn must produce a reply; later turns that raise are recorded as
    skipped and the run moves on.
    """

    def __init__(
        self,
        executor: TurnExecutor,
        planner: Optional[FollowUpPlanner] = None,
        *,
        pause: float = DEFAULT_TURN_PAUSE,
    ):
        self.executor = executor
        self.planner = planner or FollowUpPlanner()
        self.pause = pause
        self.state: Optional[DialogueState] = None

    def _update_topic(self, state: DialogueState, reply: Optional[str]) -> None:
        if not reply:
            return
        new_topic = classify_reply(reply)
        if new_topic != state.current_topic:
            state.current_topic = new_topic
            print(f"🔀 Topic transitioned to: {new_topic}")

    def _run_follow_up(self, state: DialogueState, index: int) -> TurnOutcome:
        prompt = self.planner.next_prompt(index, state.current_topic, state.last_reply())
        print(f"💬 Turn {index}: {prompt}")
        try:
            response = self.executor.send_turn(prompt)
        except Exception as exc:
            print(f"⚠️ Error during turn {index}: {format_error(exc)}")
            state.skipped.append(SkippedTurn(index=index, prompt=prompt, error=format_error(exc)))
            return TurnOutcome.SKIPPED
        state.record(Turn(index=index, prompt=prompt, response=response))
        self._update_topic(state, response)
        return TurnOutcome.COMPLETED

    def run(
        self,
        initial_prompt: str,
        max_turns: int = DEFAULT_MAX_TURNS,
        cancel: Optional[threading.Event] = None,
    ) -> DialogueResult:
        if not initial_prompt or not initial_prompt.strip():
            raise ValueError("Initial prompt is required.")
        if max_turns < 1:
            raise ValueError("max_turns must be at least 1")
        if cancel is None:
            cancel = threading.Event()

        state = DialogueState(initial_prompt=initial_prompt, max_turns=max_turns)
        self.state = state
        cancelled = False
        try:
            print(f"💬 Turn 1: {initial_prompt}")
            response = self.executor.send_turn(initial_prompt)
            if response is None:
                raise TurnFailed(1, "no reply settled for the initial prompt")
            state.record(Turn(index=1, prompt=initial_prompt, response=response))
            state.current_topic = classify_reply(response)
            print(f"🧠 Initial topic: {state.current_topic}")

            index = 2
            while index <= max_turns:
                if cancel.is_set() or cancel.wait(self.pause):
                    print(f"🛑 Dialogue cancelled before turn {index}")
                    cancelled = True
                    break
                outcome = self._run_follow_up(state, index)
                debug(f"turn {index} {outcome.value}")
                index += 1
            else:
                print(f"🏁 Reached maximum turns ({max_turns})")
        finally:
            state.active = False

        return DialogueResult(
            initial_prompt=initial_prompt,
            turns=list(state.turns),
            final_topic=state.current_topic,
            completed_turns=len(state.turns),
            max_turns=max_turns,
            skipped=list(state.skipped),
            cancelled=cancelled,
        )
