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

"""Smoke suite: an ordered set of checks against one running cluster."""

from __future__ import annotations

import enum
from collections.abc import Callable
from dataclasses import dataclass

from rich.panel import Panel

from k3s_harness import console, kubectl, logger, waits
from k3s_harness.config import RegistryConfig
from k3s_harness.constants import (
    NS_DEFAULT,
    PRIVATE_IMAGE_NAME,
    PRIVATE_IMAGE_REPO,
    PULL_SECRET_NAME,
    PULL_SECRET_NAMESPACE,
    SMOKE_POLL_INTERVAL_SECONDS,
    SMOKE_POLL_MAX_ELAPSED_SECONDS,
    SYSTEM_NAMESPACES,
)
from k3s_harness.errors import HarnessError
from k3s_harness.executor import CommandExecutor
from k3s_harness.manifests import (
    deployment_manifest,
    network_policy_manifest,
    pod_manifest,
    private_image_deployment_manifest,
    resource_quota_manifest,
    service_manifest,
    to_yaml,
)
from k3s_harness.models import ClusterHandle, CommandSpec, ExecResult
from k3s_harness.poller import ConvergencePoller, Converged, Exhausted, Failed, PollPolicy
from k3s_harness.provisioner import ProvisionResult, RegistryCredentialProvisioner
from k3s_harness.state import (
    DeploymentView,
    EndpointsView,
    NamespaceListView,
    NetworkPolicyView,
    NodeListView,
    PodView,
    QuotaView,
    SecretView,
    ServiceView,
)

POD_NAME = "test-pod"
POD_IMAGE = "nginx:alpine"
DEPLOYMENT_NAME = "nginx-deployment"
DEPLOYMENT_IMAGE = "nginx:1.25-alpine"
DEPLOYMENT_LABELS = {"app": "nginx"}
SERVICE_NAME = "nginx-service"
QUOTA_NAME = "test-quota"
QUOTA_HARD = {
    "requests.cpu": "2",
    "requests.memory": "2Gi",
    "limits.cpu": "4",
    "limits.memory": "4Gi",
    "persistentvolumeclaims": "5",
    "pods": "10",
}
NETWORK_POLICY_NAME = "test-network-policy"
PRIVATE_DEPLOYMENT_NAME = "private-image-test"
PRIVATE_LABELS = {"app": "private-test"}

CLEANUP_TARGETS = (
    ("deployment", DEPLOYMENT_NAME),
    ("service", SERVICE_NAME),
    ("pod", POD_NAME),
    ("resourcequota", QUOTA_NAME),
    ("networkpolicy", NETWORK_POLICY_NAME),
)


class CheckStatus(str, enum.Enum):
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class CheckResult:
    name: str
    status: CheckStatus
    detail: str = ""


class CheckFailed(HarnessError):
    """An expectation of a smoke check did not hold."""


class CheckSkipped(Exception):
    """A smoke check does not apply to this run."""


def expect(condition: bool, message: str, details: str | None = None) -> None:
    if not condition:
        raise CheckFailed(message, details)


class SmokeSuite:
    """Runs the smoke checks in order against a Ready cluster.

    Later checks build on earlier ones (the scale check needs the
    deployment), so the suite always runs every check in sequence and
    records each outcome rather than stopping at the first failure.

    Args:
        executor: Executor bound to the cluster's engine.
        handle: A Ready cluster handle.
        registry: Registry credentials for the pull-secret checks.
        policy: Poll policy for every convergence wait.
        poller: Poller to use, for tests.
    """

    def __init__(
        self,
        executor: CommandExecutor,
        handle: ClusterHandle,
        registry: RegistryConfig | None = None,
        policy: PollPolicy | None = None,
        poller: ConvergencePoller | None = None,
    ) -> None:
        self._executor = executor
        self._handle = handle
        self._registry = registry if registry is not None else RegistryConfig()
        self._policy = policy or PollPolicy.within(SMOKE_POLL_MAX_ELAPSED_SECONDS, SMOKE_POLL_INTERVAL_SECONDS)
        self._poller = poller or ConvergencePoller()
        self._secret_created = False

    def _run(self, spec: CommandSpec) -> ExecResult:
        return self._executor.run(self._handle, spec)

    def _apply(self, manifest: dict) -> None:
        result = self._run(kubectl.apply(to_yaml(manifest)))
        expect(result.ok, f"kubectl apply of {manifest['kind']} failed", result.stderr.strip())

    def _converged(self, outcome, what: str) -> ExecResult:
        if isinstance(outcome, Exhausted):
            raise CheckFailed(f"{what} not reached after {outcome.attempts} attempts ({outcome.elapsed:.0f}s)")
        return outcome.unwrap()

    def checks(self) -> list[tuple[str, Callable[[], str]]]:
        return [
            ("registry-secret", self.check_registry_secret),
            ("nodes", self.check_nodes),
            ("cluster-info", self.check_cluster_info),
            ("namespaces", self.check_namespaces),
            ("pod", self.check_pod),
            ("deployment", self.check_deployment),
            ("service", self.check_service),
            ("scale", self.check_scale),
            ("resource-quota", self.check_resource_quota),
            ("network-policy", self.check_network_policy),
            ("private-image", self.check_private_image),
            ("cleanup", self.check_cleanup),
        ]

    def run(self) -> list[CheckResult]:
        """Run every check and collect the outcomes."""
        console.print(Panel.fit(f"Running smoke checks on '{self._handle.id}'", style="bold blue"))
        results: list[CheckResult] = []
        for name, check in self.checks():
            try:
                detail = check()
            except CheckSkipped as skip:
                results.append(CheckResult(name, CheckStatus.SKIPPED, str(skip)))
                console.print(f"[yellow]   - {name}: skipped ({skip})[/yellow]")
            except HarnessError as err:
                logger.error("Smoke check %s failed: %s", name, err)
                results.append(CheckResult(name, CheckStatus.FAILED, err.message))
                console.print(f"[red]\u2717 {name} - {err.message}[/red]")
            else:
                results.append(CheckResult(name, CheckStatus.PASSED, detail))
                console.print(f"[green]\u2713 {name}[/green] {detail}")
        return results

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def check_registry_secret(self) -> str:
        provisioner = RegistryCredentialProvisioner(self._executor)
        if provisioner.provision(self._handle, self._registry) is ProvisionResult.SKIPPED:
            raise CheckSkipped("registry credentials not provided")
        self._secret_created = True
        secret = SecretView.from_result(
            self._run(kubectl.get("secret", PULL_SECRET_NAME, namespace=PULL_SECRET_NAMESPACE))
        )
        expect(secret.type == "kubernetes.io/dockerconfigjson", f"unexpected secret type {secret.type}")
        return f"secret {secret.name} ({secret.type})"

    def check_nodes(self) -> str:
        nodes = NodeListView.from_result(self._run(kubectl.get("nodes")))
        expect(len(nodes.nodes) > 0, "no nodes registered")
        expect(bool(nodes.nodes[0].condition_types), f"node {nodes.nodes[0].name} has no conditions")
        return f"node {nodes.nodes[0].name}"

    def check_cluster_info(self) -> str:
        result = self._run(kubectl.cluster_info())
        expect(result.ok, "kubectl cluster-info failed", result.stderr.strip())
        expect("Kubernetes control plane" in result.stdout, "cluster-info does not mention the control plane")
        return "control plane reachable"

    def check_namespaces(self) -> str:
        namespaces = NamespaceListView.from_result(self._run(kubectl.get("namespaces")))
        missing = sorted(set(SYSTEM_NAMESPACES) - namespaces.names)
        expect(not missing, f"missing namespaces: {', '.join(missing)}")
        return f"{len(namespaces.names)} namespaces"

    def check_pod(self) -> str:
        self._apply(pod_manifest(POD_NAME, POD_IMAGE, {"app": "test"}))
        self._converged(
            waits.wait_for_pod(self._executor, self._handle, POD_NAME, self._policy, poller=self._poller),
            f"pod {POD_NAME} listed",
        )
        pod = PodView.from_result(self._run(kubectl.get("pod", POD_NAME)))
        expect(pod.name == POD_NAME, f"unexpected pod name {pod.name}")
        expect(pod.images[:1] == (POD_IMAGE,), f"unexpected image {pod.images}")
        return f"phase={pod.phase}"

    def check_deployment(self) -> str:
        self._apply(deployment_manifest(DEPLOYMENT_NAME, DEPLOYMENT_IMAGE, 3, DEPLOYMENT_LABELS))
        self._converged(
            waits.wait_for_pod_count(
                self._executor, self._handle, kubectl.selector(DEPLOYMENT_LABELS), 3, self._policy,
                poller=self._poller,
            ),
            "3 deployment pods",
        )
        deployment = DeploymentView.from_result(self._run(kubectl.get("deployment", DEPLOYMENT_NAME)))
        expect(deployment.replicas == 3, f"declared replicas {deployment.replicas}, expected 3")
        ready = "not reported" if deployment.ready_replicas is None else str(deployment.ready_replicas)
        return f"3 pods, readyReplicas {ready}"

    def check_service(self) -> str:
        self._apply(service_manifest(SERVICE_NAME, DEPLOYMENT_LABELS))
        service = ServiceView.from_result(self._run(kubectl.get("service", SERVICE_NAME)))
        expect(service.type == "ClusterIP", f"service type {service.type}")
        expect(bool(service.ports) and service.ports[0].port == 80, "service does not expose port 80")

        outcome = waits.wait_for_endpoints(
            self._executor, self._handle, SERVICE_NAME, self._policy, poller=self._poller
        )
        if isinstance(outcome, Converged):
            endpoints = EndpointsView.from_result(outcome.result)
            return f"{len(endpoints.addresses)} endpoints"
        if isinstance(outcome, Failed):
            outcome.unwrap()
        # an empty endpoint set is valid while pods start
        return "no endpoints yet"

    def check_scale(self) -> str:
        result = self._run(kubectl.scale("deployment", DEPLOYMENT_NAME, 5))
        expect(result.ok, "kubectl scale failed", result.stderr.strip())
        self._converged(
            waits.wait_for_pod_count(
                self._executor, self._handle, kubectl.selector(DEPLOYMENT_LABELS), 5, self._policy,
                poller=self._poller,
            ),
            "5 deployment pods",
        )
        deployment = DeploymentView.from_result(self._run(kubectl.get("deployment", DEPLOYMENT_NAME)))
        expect(deployment.replicas == 5, f"declared replicas {deployment.replicas}, expected 5")
        return "scaled to 5"

    def check_resource_quota(self) -> str:
        self._apply(resource_quota_manifest(QUOTA_NAME, QUOTA_HARD))
        quota = QuotaView.from_result(self._run(kubectl.get("resourcequota", QUOTA_NAME)))
        expect(quota.hard.get("pods") == "10", f"pods limit {quota.hard.get('pods')!r}")
        expect(quota.hard.get("requests.memory") == "2Gi", f"memory limit {quota.hard.get('requests.memory')!r}")
        return ", ".join(f"{k}={v}" for k, v in sorted(quota.hard.items()))

    def check_network_policy(self) -> str:
        self._apply(network_policy_manifest(NETWORK_POLICY_NAME, DEPLOYMENT_LABELS))
        policy = NetworkPolicyView.from_result(self._run(kubectl.get("networkpolicy", NETWORK_POLICY_NAME)))
        expect(policy.pod_selector.get("app") == "nginx", f"pod selector {policy.pod_selector}")
        expect({"Ingress", "Egress"} <= set(policy.policy_types), f"policy types {policy.policy_types}")
        return "/".join(policy.policy_types)

    def check_private_image(self) -> str:
        if not self._secret_created:
            raise CheckSkipped("registry credentials not provided")
        image = f"{self._registry.server}/{PRIVATE_IMAGE_REPO}/{PRIVATE_IMAGE_NAME}"
        self._apply(private_image_deployment_manifest(PRIVATE_DEPLOYMENT_NAME, image, PRIVATE_LABELS))
        try:
            self._converged(
                waits.wait_for_pod_phase(
                    self._executor, self._handle, kubectl.selector(PRIVATE_LABELS), "Running", self._policy,
                    poller=self._poller,
                ),
                f"{PRIVATE_DEPLOYMENT_NAME} running",
            )
        finally:
            self._run(kubectl.delete("deployment", PRIVATE_DEPLOYMENT_NAME, namespace=NS_DEFAULT))
        return f"pulled {image}"

    def check_cleanup(self) -> str:
        failures = []
        for kind, name in CLEANUP_TARGETS:
            result = self._run(kubectl.delete(kind, name))
            if not result.ok:
                failures.append(f"{kind}/{name}: {result.stderr.strip()}")
        expect(not failures, "cleanup failed", "; ".join(failures))
        return f"deleted {len(CLEANUP_TARGETS)} resources"
