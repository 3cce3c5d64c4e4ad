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

"""Command execution inside a running cluster."""

from __future__ import annotations

import threading
import time

from k3s_harness import logger
from k3s_harness.constants import DEFAULT_EXEC_TIMEOUT
from k3s_harness.engine import ContainerEngine
from k3s_harness.errors import ExecutionChannelError
from k3s_harness.models import ClusterHandle, CommandSpec, ExecResult
from k3s_harness.utils import CallTimeout, call_with_timeout, format_argv


class CommandExecutor:
    """Runs commands in a cluster's control environment.

    A nonzero exit code is returned as data. Only failures of the channel
    itself raise, as ExecutionChannelError. Calls against the same handle are
    serialized.
    """

    def __init__(self, engine: ContainerEngine, default_timeout: float = DEFAULT_EXEC_TIMEOUT) -> None:
        self._engine = engine
        self._default_timeout = default_timeout
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, handle: ClusterHandle) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(handle.id, threading.Lock())

    def run(self, handle: ClusterHandle, spec: CommandSpec, timeout: float | None = None) -> ExecResult:
        """Execute ``spec`` inside the cluster.

        Args:
            handle: A Ready cluster handle.
            spec: Command and optional stdin payload.
            timeout: Seconds allowed for the call, defaulting to the executor's.

        Returns:
            Exit code, stdout, stderr and duration of the command.

        Raises:
            NotReadyError: If the handle is not Ready.
            ExecutionChannelError: If the engine fails or the call times out.
        """
        handle.require_ready("run command")
        budget = self._default_timeout if timeout is None else timeout
        display = format_argv(spec.argv, spec.redact)

        with self._lock_for(handle):
            logger.debug("exec [%s]: %s", handle.id, display)
            started = time.monotonic()
            try:
                raw = call_with_timeout(
                    self._engine.exec, budget, handle.container_id, spec.argv, spec.stdin_bytes
                )
            except CallTimeout as err:
                raise ExecutionChannelError(f"Command timed out after {budget:g}s", display) from err
            duration = max(time.monotonic() - started, 0.0)

        logger.debug("exec [%s]: exit=%d in %.2fs", handle.id, raw.exit_code, duration)
        return ExecResult(exit_code=raw.exit_code, stdout=raw.stdout, stderr=raw.stderr, duration=duration)
