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

"""Manifests applied by the smoke suite."""

from __future__ import annotations

import yaml

from k3s_harness.constants import NS_DEFAULT, PULL_SECRET_NAME


def to_yaml(manifest: dict) -> str:
    """Serialize a manifest dict for ``kubectl apply -f -``."""
    return yaml.safe_dump(manifest, default_flow_style=False, sort_keys=False)


def _container(name: str, image: str, port: int | None = 80) -> dict:
    container: dict = {"name": name, "image": image}
    if port is not None:
        container["ports"] = [{"containerPort": port}]
    return container


def pod_manifest(name: str, image: str, labels: dict[str, str] | None = None) -> dict:
    """Build a single-container Pod manifest.

    Args:
        name: Pod name.
        image: Container image.
        labels: Pod labels.

    Returns:
        Pod resource as a dictionary.
    """
    return {
        "apiVersion": "v1",
        "kind": "Pod",
        "metadata": {"name": name, "labels": dict(labels or {})},
        "spec": {"containers": [_container("nginx", image)]},
    }


def deployment_manifest(
    name: str,
    image: str,
    replicas: int,
    labels: dict[str, str],
    *,
    namespace: str | None = None,
    pull_secret: str | None = None,
    command: list[str] | None = None,
) -> dict:
    """Build a Deployment manifest whose selector matches ``labels``.

    Args:
        name: Deployment name.
        image: Container image.
        replicas: Desired replica count.
        labels: Selector and pod template labels.
        namespace: Namespace, or None to leave unset.
        pull_secret: Name of an image pull secret to reference.
        command: Container command override.

    Returns:
        Deployment resource as a dictionary.
    """
    container = _container("app", image, port=None if command else 80)
    if command:
        container["command"] = list(command)
    pod_spec: dict = {"containers": [container]}
    if pull_secret:
        pod_spec["imagePullSecrets"] = [{"name": pull_secret}]
    metadata: dict = {"name": name}
    if namespace:
        metadata["namespace"] = namespace
    return {
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": metadata,
        "spec": {
            "replicas": replicas,
            "selector": {"matchLabels": dict(labels)},
            "template": {"metadata": {"labels": dict(labels)}, "spec": pod_spec},
        },
    }


def service_manifest(name: str, selector: dict[str, str], port: int = 80, target_port: int = 80) -> dict:
    return {
        "apiVersion": "v1",
        "kind": "Service",
        "metadata": {"name": name},
        "spec": {
            "selector": dict(selector),
            "ports": [{"protocol": "TCP", "port": port, "targetPort": target_port}],
            "type": "ClusterIP",
        },
    }


def resource_quota_manifest(name: str, hard: dict[str, str]) -> dict:
    """ResourceQuota with ``hard`` limits given as quantity strings."""
    return {
        "apiVersion": "v1",
        "kind": "ResourceQuota",
        "metadata": {"name": name},
        "spec": {"hard": {k: str(v) for k, v in hard.items()}},
    }


def network_policy_manifest(name: str, pod_selector: dict[str, str]) -> dict:
    """NetworkPolicy allowing ingress on 80 from ``access=allowed`` pods and egress on 443."""
    return {
        "apiVersion": "networking.k8s.io/v1",
        "kind": "NetworkPolicy",
        "metadata": {"name": name},
        "spec": {
            "podSelector": {"matchLabels": dict(pod_selector)},
            "policyTypes": ["Ingress", "Egress"],
            "ingress": [{
                "from": [{"podSelector": {"matchLabels": {"access": "allowed"}}}],
                "ports": [{"protocol": "TCP", "port": 80}],
            }],
            "egress": [{
                "to": [{"podSelector": {}}],
                "ports": [{"protocol": "TCP", "port": 443}],
            }],
        },
    }


def private_image_deployment_manifest(name: str, image: str, labels: dict[str, str]) -> dict:
    """Single-replica deployment pulling ``image`` through the pull secret."""
    return deployment_manifest(
        name, image, 1, labels,
        namespace=NS_DEFAULT, pull_secret=PULL_SECRET_NAME, command=["sleep", "3600"],
    )
