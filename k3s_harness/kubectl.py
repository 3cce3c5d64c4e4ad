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

"""CommandSpec builders for the kubectl commands the harness issues."""

from __future__ import annotations

from collections.abc import Mapping

from k3s_harness.models import CommandSpec


def _namespaced(args: list[str], namespace: str | None) -> list[str]:
    if namespace is not None:
        args.extend(["-n", namespace])
    return args


def selector(labels: Mapping[str, str]) -> str:
    """Render a label mapping as a ``-l`` selector string.

    Args:
        labels: Label key-value pairs.

    Returns:
        Comma-separated ``key=value`` pairs in key order.
    """
    return ",".join(f"{k}={v}" for k, v in sorted(labels.items()))


def get(
    kind: str,
    name: str | None = None,
    *,
    namespace: str | None = None,
    label_selector: str | None = None,
) -> CommandSpec:
    """``kubectl get KIND [NAME] -o json``.

    Args:
        kind: Resource kind, e.g. ``pods``.
        name: Object name, or None to list.
        namespace: Namespace, or None for kubectl's current namespace.
        label_selector: Label selector, e.g. ``app=nginx``.

    Returns:
        The command spec.
    """
    args = ["kubectl", "get", kind]
    if name is not None:
        args.append(name)
    if label_selector is not None:
        args.extend(["-l", label_selector])
    _namespaced(args, namespace)
    args.extend(["-o", "json"])
    return CommandSpec(argv=tuple(args))


def apply(manifest: str, *, namespace: str | None = None) -> CommandSpec:
    """``kubectl apply -f -`` with the manifest on stdin."""
    return CommandSpec(argv=tuple(_namespaced(["kubectl", "apply", "-f", "-"], namespace)), stdin=manifest)


def delete(kind: str, name: str, *, namespace: str | None = None, wait: bool = False) -> CommandSpec:
    """``kubectl delete KIND NAME --ignore-not-found``."""
    args = ["kubectl", "delete", kind, name, "--ignore-not-found", f"--wait={str(wait).lower()}"]
    return CommandSpec(argv=tuple(_namespaced(args, namespace)))


def scale(kind: str, name: str, replicas: int, *, namespace: str | None = None) -> CommandSpec:
    """``kubectl scale KIND NAME --replicas=N``."""
    if replicas < 0:
        raise ValueError("replicas must be >= 0")
    args = ["kubectl", "scale", kind, name, f"--replicas={replicas}"]
    return CommandSpec(argv=tuple(_namespaced(args, namespace)))


def cluster_info() -> CommandSpec:
    return CommandSpec.of("kubectl", "cluster-info")


def create_docker_registry_secret(
    name: str,
    *,
    server: str,
    username: str,
    password: str,
    email: str,
    namespace: str,
) -> CommandSpec:
    """``kubectl create secret docker-registry`` with the password redacted from logs."""
    args = (
        "kubectl", "create", "secret", "docker-registry", name,
        f"--docker-server={server}",
        f"--docker-username={username}",
        f"--docker-password={password}",
        f"--docker-email={email}",
        "-n", namespace,
    )
    return CommandSpec(argv=args, redact=(password,))
