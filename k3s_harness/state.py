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

"""Typed, read-only projections of ``kubectl get -o json`` output.

Every view is built fresh from one query result and never mutated. Fields
the controllers may not have populated yet (deployment status, endpoint
subsets) are optional: absence is ``None`` or an empty collection, never a
made-up zero.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, ValidationError

from k3s_harness.errors import MalformedStateError
from k3s_harness.models import ExecResult


# ============================================================================
# Document loading
# ============================================================================

def load_document(source: ExecResult | str) -> dict[str, Any]:
    """Decode a JSON object from a query result or raw text.

    Args:
        source: ExecResult of a ``get -o json`` query, or the JSON text itself.

    Returns:
        The decoded top-level object.

    Raises:
        MalformedStateError: If the query failed, the text is not JSON, or the
            top level is not an object.
    """
    if isinstance(source, ExecResult):
        if not source.ok:
            raise MalformedStateError(
                f"Query exited with code {source.exit_code}", source.stderr.strip() or None
            )
        text = source.stdout
    else:
        text = source
    try:
        doc = json.loads(text)
    except (TypeError, ValueError) as err:
        raise MalformedStateError("Query output is not valid JSON", str(err)) from err
    if not isinstance(doc, dict):
        raise MalformedStateError("Query output is not a JSON object", type(doc).__name__)
    return doc


def _mapping(doc: Mapping[str, Any], key: str, *, required: bool) -> Mapping[str, Any]:
    value = doc.get(key)
    if value is None:
        if required:
            raise MalformedStateError(f"Document has no '{key}' section")
        return {}
    if not isinstance(value, Mapping):
        raise MalformedStateError(f"Section '{key}' is not an object")
    return value


def _list(doc: Mapping[str, Any], key: str) -> list[Any]:
    value = doc.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise MalformedStateError(f"Field '{key}' is not an array")
    return value


def _items(doc: Mapping[str, Any]) -> list[Mapping[str, Any]]:
    items = doc.get("items")
    if not isinstance(items, list):
        raise MalformedStateError("List document has no 'items' array")
    if not all(isinstance(item, Mapping) for item in items):
        raise MalformedStateError("List document contains non-object items")
    return items


def _name(doc: Mapping[str, Any]) -> str:
    name = _mapping(doc, "metadata", required=True).get("name")
    if not isinstance(name, str):
        raise MalformedStateError("Document metadata has no name")
    return name


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class _View(_Frozen):
    """Base for top-level views with JSON and ExecResult constructors."""

    kind: ClassVar[str] = ""

    @classmethod
    def from_result(cls, result: ExecResult):
        return cls.from_json(result)

    @classmethod
    def from_json(cls, source: ExecResult | str):
        doc = load_document(source)
        try:
            return cls.from_document(doc)
        except ValidationError as err:
            raise MalformedStateError(f"Unexpected {cls.kind or cls.__name__} shape", str(err)) from err

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]):
        raise NotImplementedError


# ============================================================================
# Workloads
# ============================================================================

class DeploymentView(_View):
    """Replica counts of a deployment.

    ``ready_replicas`` and ``available_replicas`` are None while the
    controller has not written them to status.
    """

    kind: ClassVar[str] = "Deployment"

    name: str
    replicas: int
    ready_replicas: int | None = None
    available_replicas: int | None = None
    selector: dict[str, str] = {}

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> DeploymentView:
        spec = _mapping(doc, "spec", required=True)
        status = _mapping(doc, "status", required=False)
        return cls(
            name=_name(doc),
            # API server defaulting fills this in; 1 is its default
            replicas=spec.get("replicas", 1),
            ready_replicas=status.get("readyReplicas"),
            available_replicas=status.get("availableReplicas"),
            selector=_mapping(spec, "selector", required=False).get("matchLabels") or {},
        )

    @property
    def has_ready_replicas(self) -> bool:
        return self.ready_replicas is not None

    @property
    def fully_ready(self) -> bool:
        return self.ready_replicas is not None and self.ready_replicas >= self.replicas


class ContainerInfo(_Frozen):
    name: str
    image: str


class PodInfo(_View):
    """Name, phase and readiness of one pod."""

    name: str
    phase: str | None = None
    ready: bool = False
    terminating: bool = False
    containers: tuple[ContainerInfo, ...] = ()

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> PodInfo:
        metadata = _mapping(doc, "metadata", required=True)
        spec = _mapping(doc, "spec", required=False)
        status = _mapping(doc, "status", required=False)
        conditions = _list(status, "conditions")
        ready = any(
            isinstance(c, Mapping) and c.get("type") == "Ready" and c.get("status") == "True"
            for c in conditions
        )
        containers = tuple(
            ContainerInfo(name=c.get("name", ""), image=c.get("image", ""))
            for c in _list(spec, "containers")
            if isinstance(c, Mapping)
        )
        return cls(
            name=_name(doc),
            phase=status.get("phase"),
            ready=ready,
            terminating=metadata.get("deletionTimestamp") is not None,
            containers=containers,
        )

    @property
    def images(self) -> tuple[str, ...]:
        return tuple(c.image for c in self.containers)

    @property
    def running(self) -> bool:
        return self.phase == "Running"


class PodView(PodInfo):
    """A single pod fetched with ``kubectl get pod NAME -o json``."""

    kind: ClassVar[str] = "Pod"


class PodListView(_View):
    """Pods returned by a ``get pods`` list query."""

    kind: ClassVar[str] = "PodList"

    pods: tuple[PodInfo, ...] = ()

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> PodListView:
        return cls(pods=tuple(PodInfo.from_document(item) for item in _items(doc)))

    @property
    def names(self) -> frozenset[str]:
        return frozenset(p.name for p in self.pods)

    @property
    def count(self) -> int:
        return len(self.pods)

    def by_name(self, name: str) -> PodInfo | None:
        return next((p for p in self.pods if p.name == name), None)

    def running(self) -> tuple[PodInfo, ...]:
        return tuple(p for p in self.pods if p.running and not p.terminating)


# ============================================================================
# Networking
# ============================================================================

class EndpointsView(_View):
    """Backing addresses of a service. An empty set is a valid state."""

    kind: ClassVar[str] = "Endpoints"

    service: str
    addresses: frozenset[str] = frozenset()
    not_ready_addresses: frozenset[str] = frozenset()

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> EndpointsView:
        ready: set[str] = set()
        not_ready: set[str] = set()
        for subset in _list(doc, "subsets"):
            if not isinstance(subset, Mapping):
                continue
            ready.update(_ips(subset, "addresses"))
            not_ready.update(_ips(subset, "notReadyAddresses"))
        return cls(service=_name(doc), addresses=frozenset(ready), not_ready_addresses=frozenset(not_ready))

    @property
    def empty(self) -> bool:
        return not self.addresses


def _ips(subset: Mapping[str, Any], key: str) -> list[str]:
    return [e["ip"] for e in _list(subset, key) if isinstance(e, Mapping) and isinstance(e.get("ip"), str)]


class ServicePort(_Frozen):
    port: int
    protocol: str = "TCP"
    target_port: int | str | None = None


class ServiceView(_View):
    kind: ClassVar[str] = "Service"

    name: str
    type: str
    cluster_ip: str | None = None
    ports: tuple[ServicePort, ...] = ()
    selector: dict[str, str] = {}

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> ServiceView:
        spec = _mapping(doc, "spec", required=True)
        ports = tuple(
            ServicePort(port=p.get("port"), protocol=p.get("protocol", "TCP"), target_port=p.get("targetPort"))
            for p in _list(spec, "ports")
            if isinstance(p, Mapping)
        )
        return cls(
            name=_name(doc),
            type=spec.get("type", "ClusterIP"),
            cluster_ip=spec.get("clusterIP"),
            ports=ports,
            selector=spec.get("selector") or {},
        )


class NetworkPolicyView(_View):
    kind: ClassVar[str] = "NetworkPolicy"

    name: str
    pod_selector: dict[str, str] = {}
    policy_types: tuple[str, ...] = ()

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> NetworkPolicyView:
        spec = _mapping(doc, "spec", required=True)
        return cls(
            name=_name(doc),
            pod_selector=_mapping(spec, "podSelector", required=False).get("matchLabels") or {},
            policy_types=spec.get("policyTypes") or (),
        )


# ============================================================================
# Cluster-scoped and policy objects
# ============================================================================

class QuotaView(_View):
    """Hard limits of a resource quota, values kept verbatim (e.g. ``2Gi``)."""

    kind: ClassVar[str] = "ResourceQuota"

    name: str
    hard: dict[str, str] = {}

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> QuotaView:
        spec = _mapping(doc, "spec", required=True)
        hard = spec.get("hard") or {}
        if not isinstance(hard, Mapping):
            raise MalformedStateError("ResourceQuota 'spec.hard' is not an object")
        # the API server returns quantities as strings; keep them that way
        return cls(name=_name(doc), hard={str(k): str(v) for k, v in hard.items()})


class NodeInfo(_Frozen):
    name: str
    ready: bool = False
    condition_types: tuple[str, ...] = ()


class NodeListView(_View):
    kind: ClassVar[str] = "NodeList"

    nodes: tuple[NodeInfo, ...] = ()

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> NodeListView:
        nodes = []
        for item in _items(doc):
            conditions = [
                c for c in _list(_mapping(item, "status", required=False), "conditions")
                if isinstance(c, Mapping)
            ]
            nodes.append(NodeInfo(
                name=_name(item),
                ready=any(c.get("type") == "Ready" and c.get("status") == "True" for c in conditions),
                condition_types=tuple(str(c.get("type")) for c in conditions),
            ))
        return cls(nodes=tuple(nodes))

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(n.name for n in self.nodes)


class NamespaceListView(_View):
    kind: ClassVar[str] = "NamespaceList"

    names: frozenset[str] = frozenset()

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> NamespaceListView:
        return cls(names=frozenset(_name(item) for item in _items(doc)))


class SecretView(_View):
    """Name and type of a secret. Data is deliberately not projected."""

    kind: ClassVar[str] = "Secret"

    name: str
    type: str | None = None

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> SecretView:
        return cls(name=_name(doc), type=doc.get("type"))
