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

"""Utility functions for bounded calls and argv display."""

from __future__ import annotations

import shlex
from collections.abc import Callable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import TypeVar

T = TypeVar("T")


class CallTimeout(Exception):
    """Raised by :func:`call_with_timeout` when the budget elapses.

    Attributes:
        future: The abandoned call, for callers that must clean up after it
            settles.
    """

    def __init__(self, message: str, future: Future | None = None) -> None:
        super().__init__(message)
        self.future = future


def call_with_timeout(fn: Callable[..., T], timeout: float | None, *args, **kwargs) -> T:
    """Run ``fn`` on a worker thread and wait at most ``timeout`` seconds.

    The worker is abandoned, not interrupted, when the budget elapses.

    Args:
        fn: Callable to run.
        timeout: Maximum seconds to wait, or None to wait indefinitely.
        *args: Positional arguments for ``fn``.
        **kwargs: Keyword arguments for ``fn``.

    Returns:
        Whatever ``fn`` returns.

    Raises:
        CallTimeout: If ``fn`` did not finish in time.
    """
    if timeout is None:
        return fn(*args, **kwargs)
    pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="k3s-harness-bounded")
    try:
        future = pool.submit(fn, *args, **kwargs)
        try:
            return future.result(timeout=timeout)
        except FutureTimeoutError as err:
            raise CallTimeout(f"call did not finish within {timeout:g}s", future) from err
    finally:
        pool.shutdown(wait=False, cancel_futures=True)


def format_argv(argv: Sequence[str], redact: Sequence[str] = ()) -> str:
    """Render argv as a shell-quoted string, masking any ``redact`` values.

    Args:
        argv: Command and arguments.
        redact: Secret substrings to replace with ``***``.

    Returns:
        Printable command line.
    """
    rendered = shlex.join(argv)
    for secret in redact:
        if secret:
            rendered = rendered.replace(secret, "***")
    return rendered
