# /*
# Copyright 2026 The Grove Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# */

"""Polling until asynchronous cluster state converges.

A mutation such as ``kubectl apply`` is accepted immediately, but pods,
replica counts and endpoints show up later. :class:`ConvergencePoller`
re-runs a probe until a predicate holds or the policy's budget runs out.

Outcomes are values, not exceptions:

* :class:`Converged` - the predicate held; carries the matching result.
* :class:`Exhausted` - the budget ran out first; callers decide whether
  that is a failure.
* :class:`Failed` - the probe or predicate raised a harness error. These
  are never retried.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, NoReturn, TypeVar, Union

from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_result,
    stop_after_attempt,
    stop_any,
    wait_fixed,
    wait_random,
)

from k3s_harness import logger
from k3s_harness.errors import ConvergenceError, HarnessError

T = TypeVar("T")

_EXHAUSTED = object()


@dataclass(frozen=True)
class PollPolicy:
    """Timing and budget for one poll.

    At least one of ``max_attempts`` and ``max_elapsed`` must be set. With
    both, whichever is reached first stops polling. A time budget stops
    polling once the next attempt would start after the deadline.

    Attributes:
        interval: Seconds to wait between attempts.
        max_attempts: Maximum number of probe calls.
        max_elapsed: Maximum seconds from the first attempt.
        jitter: Upper bound of random seconds added to each wait; 0 disables it.
    """

    interval: float
    max_attempts: int | None = None
    max_elapsed: float | None = None
    jitter: float = 0.0

    def __post_init__(self) -> None:
        if self.max_attempts is None and self.max_elapsed is None:
            raise ValueError("PollPolicy needs max_attempts or max_elapsed")
        if self.interval < 0:
            raise ValueError("PollPolicy interval must be >= 0")
        if self.max_attempts is not None and self.max_attempts < 1:
            raise ValueError("PollPolicy max_attempts must be >= 1")
        if self.max_elapsed is not None and self.max_elapsed < 0:
            raise ValueError("PollPolicy max_elapsed must be >= 0")
        if self.jitter < 0:
            raise ValueError("PollPolicy jitter must be >= 0")

    @classmethod
    def attempts(cls, max_attempts: int, interval: float) -> PollPolicy:
        return cls(interval=interval, max_attempts=max_attempts)

    @classmethod
    def within(cls, max_elapsed: float, interval: float) -> PollPolicy:
        return cls(interval=interval, max_elapsed=max_elapsed)


@dataclass(frozen=True)
class Converged(Generic[T]):
    """The predicate held at attempt ``attempts``."""

    result: T
    attempts: int
    elapsed: float

    @property
    def converged(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.result


@dataclass(frozen=True)
class Exhausted(Generic[T]):
    """The budget ran out before the predicate held."""

    attempts: int
    elapsed: float
    last_result: T | None = None

    @property
    def converged(self) -> bool:
        return False

    def unwrap(self) -> NoReturn:
        """Raise ConvergenceError; for callers that treat exhaustion as failure."""
        raise ConvergenceError(
            f"Condition not reached after {self.attempts} attempts ({self.elapsed:.1f}s)",
            repr(self.last_result) if self.last_result is not None else None,
        )


@dataclass(frozen=True)
class Failed:
    """The probe or predicate raised an infrastructure error."""

    error: HarnessError
    attempts: int
    elapsed: float

    @property
    def converged(self) -> bool:
        return False

    def unwrap(self) -> NoReturn:
        """Re-raise the harness error that ended the poll."""
        raise self.error


PollOutcome = Union[Converged[T], Exhausted[T], Failed]


class ConvergencePoller:
    """Retries a probe until a predicate over its result holds.

    Args:
        sleep: Function used to wait between attempts.
        clock: Monotonic clock used for the time budget.
    """

    def __init__(
        self,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._sleep = sleep
        self._clock = clock

    def poll(
        self,
        probe: Callable[[], T],
        predicate: Callable[[T], bool],
        policy: PollPolicy,
        description: str = "condition",
    ) -> PollOutcome:
        """Run ``probe`` until ``predicate`` holds or ``policy`` is exhausted.

        Args:
            probe: Produces one observation, typically an ExecResult.
            predicate: Decides whether an observation is the expected state.
            policy: Interval and budget.
            description: Label used in log messages.

        Returns:
            Converged, Exhausted or Failed.
        """
        attempts = 0
        last: list[T] = []
        started = self._clock()

        def _attempt() -> T:
            nonlocal attempts
            attempts += 1
            result = probe()
            last[:] = [result]
            return result

        def _past_deadline(retry_state) -> bool:
            elapsed = self._clock() - started
            return elapsed + policy.interval > policy.max_elapsed

        stops = []
        if policy.max_attempts is not None:
            stops.append(stop_after_attempt(policy.max_attempts))
        if policy.max_elapsed is not None:
            stops.append(_past_deadline)

        wait = wait_fixed(policy.interval)
        if policy.jitter > 0:
            wait = wait + wait_random(0, policy.jitter)

        retrying = Retrying(
            stop=stop_any(*stops),
            wait=wait,
            retry=retry_if_result(lambda result: not predicate(result)),
            sleep=self._sleep,
            before_sleep=before_sleep_log(logger, logging.DEBUG),
            retry_error_callback=lambda retry_state: _EXHAUSTED,
            reraise=True,
        )

        try:
            value = retrying(_attempt)
        except HarnessError as err:
            elapsed = self._clock() - started
            logger.warning("Polling for %s failed after %d attempts: %s", description, attempts, err.message)
            return Failed(error=err, attempts=attempts, elapsed=elapsed)

        elapsed = self._clock() - started
        if value is _EXHAUSTED:
            logger.info("Gave up waiting for %s after %d attempts (%.1fs)", description, attempts, elapsed)
            return Exhausted(attempts=attempts, elapsed=elapsed, last_result=last[0] if last else None)
        logger.debug("%s reached after %d attempts (%.1fs)", description, attempts, elapsed)
        return Converged(result=value, attempts=attempts, elapsed=elapsed)
