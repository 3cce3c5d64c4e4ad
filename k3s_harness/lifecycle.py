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

"""K3s cluster lifecycle: start, readiness, credentials, and teardown."""

from __future__ import annotations

import time
import uuid
from collections.abc import Callable, Iterator
from concurrent.futures import CancelledError, Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from contextlib import contextmanager

from rich.panel import Panel

from k3s_harness import console, logger
from k3s_harness.config import ClusterConfig
from k3s_harness.constants import (
    K3S_API_PORT,
    K3S_CONTAINER_LABEL,
    K3S_KUBECONFIG_PATH,
    K3S_READY_LOG_MARKER,
    K3S_TMPFS_MOUNTS,
    STOP_GRACE_SECONDS,
)
from k3s_harness.engine import ContainerEngine, DockerEngine
from k3s_harness.errors import ExecutionChannelError, HarnessError, StartupTimeoutError
from k3s_harness.executor import CommandExecutor
from k3s_harness.models import ClusterCredentials, ClusterHandle, ClusterState
from k3s_harness.poller import ConvergencePoller, Exhausted, Failed, PollPolicy
from k3s_harness.utils import CallTimeout, call_with_timeout

_LOG_TAIL_LINES = 20
# Smallest budget given to a single readiness call.
_MIN_CHECK_SECONDS = 1.0


def _tail(text: str, lines: int = _LOG_TAIL_LINES) -> str:
    return "\n".join(text.splitlines()[-lines:])


class ClusterLifecycle:
    """Owns one-cluster-per-scenario acquisition and teardown.

    Args:
        engine: Container engine, defaulting to the local Docker daemon.
        config: Cluster settings, defaulting to K3S_HARNESS_* env values.
        poller: Poller used for the readiness wait.
        clock: Monotonic clock for the startup deadline.
    """

    def __init__(
        self,
        engine: ContainerEngine | None = None,
        config: ClusterConfig | None = None,
        poller: ConvergencePoller | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._engine = engine if engine is not None else DockerEngine()
        self._config = config if config is not None else ClusterConfig()
        self._poller = poller if poller is not None else ConvergencePoller()
        self._clock = clock
        self.executor = CommandExecutor(self._engine, self._config.exec_timeout)

    @property
    def config(self) -> ClusterConfig:
        return self._config

    # ------------------------------------------------------------------
    # Acquisition
    # ------------------------------------------------------------------

    def acquire(self, image_reference: str | None = None, startup_timeout: float | None = None) -> ClusterHandle:
        """Start a cluster and block until its control plane is ready.

        Args:
            image_reference: K3s image, defaulting to the configured one.
            startup_timeout: Seconds to wait for readiness, defaulting to the
                configured budget. Includes the time spent starting the container.

        Returns:
            A Ready handle with credentials extracted.

        Raises:
            StartupTimeoutError: If readiness is not reported in time.
            ExecutionChannelError: If the engine fails while starting.
        """
        image = image_reference or self._config.image
        budget = self._config.startup_timeout if startup_timeout is None else startup_timeout
        deadline = self._clock() + budget
        handle = ClusterHandle(id=f"{self._config.name_prefix}-{uuid.uuid4().hex[:10]}", image=image)

        console.print(Panel.fit(f"Starting K3s cluster ({image})", style="bold blue"))
        try:
            handle.container_id = self._start_container(handle, budget)
            self._wait_for_control_plane(handle, deadline, budget)
            handle.credentials = self._extract_credentials(handle)
        except BaseException:
            self.release(handle)
            raise

        handle.state = ClusterState.READY
        console.print(f"[green]\u2705 Cluster '{handle.id}' is ready ({handle.credentials.server})[/green]")
        return handle

    def _start_container(self, handle: ClusterHandle, budget: float) -> str:
        try:
            return call_with_timeout(
                self._engine.start,
                budget,
                handle.image,
                name=handle.id,
                command=["server", *self._config.server_args],
                ports=[K3S_API_PORT],
                tmpfs=list(K3S_TMPFS_MOUNTS),
                labels={K3S_CONTAINER_LABEL: handle.id},
                privileged=self._config.privileged,
            )
        except CallTimeout as err:
            handle.container_id = self._settle_late_start(handle, err.future)
            raise StartupTimeoutError(
                f"Container for '{handle.id}' did not start within {budget:g}s",
                "The image pull may be slow; raise K3S_HARNESS_STARTUP_TIMEOUT.",
            ) from err

    def _settle_late_start(self, handle: ClusterHandle, future: Future | None) -> str | None:
        """Wait for an abandoned start so the container it creates can be removed.

        Returns:
            The late container id, or None if the start failed, was cancelled,
            or is still pending after the teardown budget.
        """
        if future is None:
            return None
        grace = self._config.stop_timeout + STOP_GRACE_SECONDS
        try:
            container_id = future.result(timeout=grace)
        except FutureTimeoutError:
            logger.error("Start of %s still pending after %.0fs; container may be left behind", handle.id, grace)
            console.print(
                f"[red]\u274c Start of '{handle.id}' did not settle; "
                f"remove containers labelled {K3S_CONTAINER_LABEL}={handle.id} manually[/red]"
            )
            return None
        except CancelledError:
            return None
        except HarnessError as err:
            logger.debug("Late start of %s failed: %s", handle.id, err)
            return None
        logger.debug("Late start of %s produced container %s", handle.id, container_id)
        return container_id

    def _bounded(self, handle: ClusterHandle, deadline: float, budget: float, fn: Callable[..., str], *args) -> str:
        """Run one readiness call within what is left of the startup budget."""
        remaining = max(deadline - self._clock(), _MIN_CHECK_SECONDS)
        try:
            return call_with_timeout(fn, remaining, *args)
        except CallTimeout as err:
            raise StartupTimeoutError(
                f"Cluster '{handle.id}' not ready within {budget:g}s",
                "The Docker daemon did not answer the readiness check in time.",
            ) from err

    def _wait_for_control_plane(self, handle: ClusterHandle, deadline: float, budget: float) -> None:
        console.print("[yellow]\u2139\ufe0f  Waiting for the K3s control plane...[/yellow]")
        container_id = handle.container_id

        def _check_control_plane() -> str:
            status = self._bounded(handle, deadline, budget, self._engine.status, container_id)
            logs = self._bounded(handle, deadline, budget, self._engine.logs, container_id)
            if status in ("exited", "dead"):
                raise ExecutionChannelError(
                    f"K3s container exited during startup (status={status})",
                    _tail(logs),
                )
            return logs

        policy = PollPolicy(
            interval=self._config.readiness_poll_interval,
            max_elapsed=max(deadline - self._clock(), 0.0),
        )
        outcome = self._poller.poll(
            _check_control_plane, lambda logs: K3S_READY_LOG_MARKER in logs, policy, description="K3s control plane"
        )
        if isinstance(outcome, Exhausted):
            raise StartupTimeoutError(
                f"Cluster '{handle.id}' not ready within {budget:g}s",
                _tail(outcome.last_result or ""),
            )
        if isinstance(outcome, Failed):
            raise outcome.error

    def _extract_credentials(self, handle: ClusterHandle) -> ClusterCredentials:
        try:
            raw = call_with_timeout(
                self._engine.exec, self._config.exec_timeout, handle.container_id, ["cat", K3S_KUBECONFIG_PATH]
            )
        except CallTimeout as err:
            raise ExecutionChannelError("Timed out reading the kubeconfig") from err
        if raw.exit_code != 0:
            raise ExecutionChannelError(f"Failed to read {K3S_KUBECONFIG_PATH}", raw.stderr.strip() or None)
        try:
            host_port = call_with_timeout(
                self._engine.host_port, self._config.exec_timeout, handle.container_id, K3S_API_PORT
            )
        except CallTimeout as err:
            raise ExecutionChannelError("Timed out reading the published API server port") from err
        server = f"https://{self._engine.host}:{host_port}"
        logger.debug("Cluster %s API server at %s", handle.id, server)
        return ClusterCredentials.from_kubeconfig(raw.stdout, server=server)

    # ------------------------------------------------------------------
    # Ready-state accessors
    # ------------------------------------------------------------------

    def credentials(self, handle: ClusterHandle) -> ClusterCredentials:
        """Return the credentials extracted when the cluster became Ready.

        Raises:
            NotReadyError: If the handle is not Ready.
        """
        handle.require_ready("read credentials")
        return handle.credentials

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def release(self, handle: ClusterHandle) -> None:
        """Stop and remove the cluster container. Safe to call repeatedly.

        Teardown failures are reported on the console and in the log, never
        raised, so they cannot mask a scenario's own outcome.
        """
        if handle.state is ClusterState.STOPPED:
            return
        handle.state = ClusterState.STOPPING
        target = handle.container_id or handle.id
        budget = self._config.stop_timeout + STOP_GRACE_SECONDS
        console.print(f"[yellow]\u2139\ufe0f  Deleting K3s cluster '{handle.id}'...[/yellow]")
        try:
            call_with_timeout(self._engine.stop, budget, target, self._config.stop_timeout)
        except CallTimeout:
            logger.error("Teardown of %s did not finish within %.0fs", handle.id, budget)
            console.print(f"[red]\u274c Cluster '{handle.id}' did not stop within {budget:g}s[/red]")
        except HarnessError as err:
            logger.error("Teardown of %s failed: %s", handle.id, err)
            console.print(f"[red]\u274c Failed to delete cluster '{handle.id}': {err.message}[/red]")
        else:
            console.print(f"[green]\u2705 Cluster '{handle.id}' deleted[/green]")
        finally:
            handle.state = ClusterState.STOPPED

    @contextmanager
    def cluster(
        self, image_reference: str | None = None, startup_timeout: float | None = None
    ) -> Iterator[ClusterHandle]:
        """Acquire a cluster for the duration of a ``with`` block.

        Release runs on every exit path, including exceptions.
        """
        handle = self.acquire(image_reference, startup_timeout)
        try:
            yield handle
        finally:
            self.release(handle)
