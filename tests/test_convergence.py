import pytest

from convergence import ConvergenceResult, StabilitySample, sample_values, wait_for_settled


def _scripted(values):
    """Accessor returning ``values`` in order, repeating the last one."""
    remaining = list(values)

    def accessor():
        if len(remaining) > 1:
            return remaining.pop(0)
        return remaining[0]

    return accessor


def test_sample_values_is_finite_and_spaced(clock):
    samples = list(sample_values(lambda: "x", 0.25, 1.0, clock=clock, sleep=clock.sleep))

    assert [s.observed_at for s in samples] == [0.0, 0.25, 0.5, 0.75, 1.0]
    assert all(isinstance(s, StabilitySample) and s.value == "x" for s in samples)


def test_sample_values_is_not_restartable(clock):
    gen = sample_values(lambda: None, 0.5, 1.0, clock=clock, sleep=clock.sleep)
    first = list(gen)
    assert len(first) == 3
    assert list(gen) == []


def test_sample_values_rejects_non_positive_interval(clock):
    with pytest.raises(ValueError):
        list(sample_values(lambda: None, 0, 1.0, clock=clock, sleep=clock.sleep))


def test_held_value_settles_after_settle_window(clock):
    result = wait_for_settled(
        lambda: "Paris is the capital.",
        baseline=None,
        settle=2.0,
        ceiling=50.0,
        interval=0.15,
        clock=clock,
        sleep=clock.sleep,
    )

    assert result.value == "Paris is the capital."
    assert not result.timed_out
    assert 2.0 <= result.elapsed < 2.3


def test_streaming_reply_resets_settle_timer(clock):
    accessor = _scripted(["Par", "Paris", "Paris is", "Paris is the", "Paris is the capital."])

    result = wait_for_settled(accessor, settle=1.0, ceiling=20.0, interval=0.5, clock=clock, sleep=clock.sleep)

    # last change observed at t=2.0, so nothing can settle before t=3.0
    assert result.value == "Paris is the capital."
    assert result.elapsed >= 3.0


def test_value_that_never_stops_changing_times_out(clock):
    counter = iter(range(10_000))

    result = wait_for_settled(
        lambda: f"chunk {next(counter)}", settle=1.0, ceiling=5.0, interval=0.25, clock=clock, sleep=clock.sleep
    )

    assert result.timed_out
    assert result.value is None
    assert result.elapsed > 5.0


def test_value_equal_to_baseline_is_never_settled(clock):
    result = wait_for_settled(
        lambda: "Old answer", baseline="Old answer", settle=1.0, ceiling=4.0, interval=0.25,
        clock=clock, sleep=clock.sleep,
    )

    assert result == ConvergenceResult.timeout(result.elapsed)
    assert result.timed_out


def test_new_reply_after_stale_baseline_settles(clock):
    accessor = _scripted(["Old answer", "Old answer", None, "", "New answer"])

    result = wait_for_settled(
        accessor, baseline="Old answer", settle=1.0, ceiling=10.0, interval=0.25, clock=clock, sleep=clock.sleep
    )

    assert result.value == "New answer"


def test_empty_values_are_ignored_until_timeout(clock):
    result = wait_for_settled(lambda: "", settle=0.5, ceiling=2.0, interval=0.25, clock=clock, sleep=clock.sleep)

    assert result.timed_out
