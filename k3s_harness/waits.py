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

"""Common convergence checks built on ConvergencePoller.

A query that exits nonzero (typically ``NotFound`` right after an apply) is
treated as "not there yet". Malformed output from a successful query is a
real failure and ends the poll as Failed.
"""

from __future__ import annotations

from collections.abc import Callable

from k3s_harness import kubectl
from k3s_harness.executor import CommandExecutor
from k3s_harness.models import ClusterHandle, CommandSpec, ExecResult
from k3s_harness.poller import ConvergencePoller, PollOutcome, PollPolicy
from k3s_harness.state import DeploymentView, EndpointsView, PodListView


def query_probe(executor: CommandExecutor, handle: ClusterHandle, spec: CommandSpec) -> Callable[[], ExecResult]:
    """Build a probe that runs ``spec`` once per call."""
    return lambda: executor.run(handle, spec)


def when_ok(check: Callable[[ExecResult], bool]) -> Callable[[ExecResult], bool]:
    """Wrap ``check`` so failed queries count as not yet converged."""
    return lambda result: result.ok and check(result)


def wait_for(
    executor: CommandExecutor,
    handle: ClusterHandle,
    spec: CommandSpec,
    check: Callable[[ExecResult], bool],
    policy: PollPolicy,
    *,
    poller: ConvergencePoller | None = None,
    description: str = "condition",
) -> PollOutcome:
    """Poll ``spec`` until ``check`` holds on a successful result."""
    poller = poller or ConvergencePoller()
    return poller.poll(query_probe(executor, handle, spec), when_ok(check), policy, description=description)


def wait_for_pod(
    executor: CommandExecutor,
    handle: ClusterHandle,
    name: str,
    policy: PollPolicy,
    *,
    namespace: str | None = None,
    phase: str | None = None,
    poller: ConvergencePoller | None = None,
) -> PollOutcome:
    """Wait until pod ``name`` is listed, optionally in ``phase``.

    Args:
        executor: Executor bound to the cluster's engine.
        handle: A Ready cluster handle.
        name: Pod name.
        policy: Interval and budget.
        namespace: Namespace to list.
        phase: Required phase such as ``Running``, or None for any.
        poller: Poller to use, for tests.

    Returns:
        The poll outcome; Converged carries the pod list result.
    """
    def _check(result: ExecResult) -> bool:
        pod = PodListView.from_result(result).by_name(name)
        return pod is not None and (phase is None or pod.phase == phase)

    return wait_for(
        executor, handle, kubectl.get("pods", namespace=namespace), _check, policy,
        poller=poller, description=f"pod {name}",
    )


def wait_for_pod_count(
    executor: CommandExecutor,
    handle: ClusterHandle,
    label_selector: str,
    count: int,
    policy: PollPolicy,
    *,
    namespace: str | None = None,
    poller: ConvergencePoller | None = None,
) -> PollOutcome:
    """Wait until exactly ``count`` pods match ``label_selector``."""
    return wait_for(
        executor, handle, kubectl.get("pods", namespace=namespace, label_selector=label_selector),
        lambda result: PodListView.from_result(result).count == count, policy,
        poller=poller, description=f"{count} pods with {label_selector}",
    )


def wait_for_pod_phase(
    executor: CommandExecutor,
    handle: ClusterHandle,
    label_selector: str,
    phase: str,
    policy: PollPolicy,
    *,
    namespace: str | None = None,
    poller: ConvergencePoller | None = None,
) -> PollOutcome:
    """Wait until at least one pod matches and every match is in ``phase``."""
    def _check(result: ExecResult) -> bool:
        pods = PodListView.from_result(result).pods
        return bool(pods) and all(p.phase == phase for p in pods)

    return wait_for(
        executor, handle, kubectl.get("pods", namespace=namespace, label_selector=label_selector),
        _check, policy, poller=poller, description=f"pods {label_selector} {phase}",
    )


def wait_for_ready_replicas(
    executor: CommandExecutor,
    handle: ClusterHandle,
    deployment: str,
    policy: PollPolicy,
    *,
    namespace: str | None = None,
    poller: ConvergencePoller | None = None,
) -> PollOutcome:
    """Wait until the deployment reports all declared replicas ready."""
    return wait_for(
        executor, handle, kubectl.get("deployment", deployment, namespace=namespace),
        lambda result: DeploymentView.from_result(result).fully_ready, policy,
        poller=poller, description=f"deployment {deployment} ready",
    )


def wait_for_endpoints(
    executor: CommandExecutor,
    handle: ClusterHandle,
    service: str,
    policy: PollPolicy,
    *,
    namespace: str | None = None,
    poller: ConvergencePoller | None = None,
) -> PollOutcome:
    """Wait until the service has at least one ready backing address."""
    return wait_for(
        executor, handle, kubectl.get("endpoints", service, namespace=namespace),
        lambda result: not EndpointsView.from_result(result).empty, policy,
        poller=poller, description=f"endpoints of {service}",
    )
