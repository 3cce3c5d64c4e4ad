"""Property-based tests for convergence polling budgets."""

from hypothesis import given
from hypothesis import strategies as st

from k3s_harness.poller import Converged, ConvergencePoller, Exhausted, PollPolicy

from fakes import FakeClock


def _poller():
    clock = FakeClock()
    return ConvergencePoller(sleep=clock.sleep, clock=clock), clock


@given(max_attempts=st.integers(min_value=1, max_value=50), interval=st.floats(min_value=0, max_value=30))
def test_never_true_predicate_probes_exactly_max_attempts(max_attempts, interval):
    """For any attempt budget N, a predicate that never holds is probed exactly N times."""
    poller, clock = _poller()
    calls = []

    outcome = poller.poll(lambda: calls.append(1), lambda r: False, PollPolicy.attempts(max_attempts, interval))

    assert isinstance(outcome, Exhausted)
    assert len(calls) == max_attempts
    assert len(clock.sleeps) == max_attempts - 1


@given(data=st.data())
def test_converges_at_first_matching_attempt(data):
    """For a predicate that first holds at attempt k <= N, the poller stops at k."""
    max_attempts = data.draw(st.integers(min_value=1, max_value=50))
    k = data.draw(st.integers(min_value=1, max_value=max_attempts))
    poller, _ = _poller()
    counter = iter(range(1, max_attempts + 1))

    outcome = poller.poll(lambda: next(counter), lambda n: n >= k, PollPolicy.attempts(max_attempts, 1))

    assert isinstance(outcome, Converged)
    assert outcome.attempts == k
    assert outcome.result == k


@given(
    max_elapsed=st.floats(min_value=0, max_value=120, allow_nan=False),
    interval=st.floats(min_value=0.5, max_value=60, allow_nan=False),
)
def test_time_budget_is_never_exceeded(max_elapsed, interval):
    """No attempt starts after the elapsed budget."""
    poller, clock = _poller()

    outcome = poller.poll(lambda: None, lambda r: False, PollPolicy.within(max_elapsed, interval))

    assert isinstance(outcome, Exhausted)
    assert outcome.elapsed <= max_elapsed + 1e-6
    assert outcome.attempts >= 1
