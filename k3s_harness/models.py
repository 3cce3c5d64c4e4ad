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

"""Cluster handle, credentials, and command value types."""

from __future__ import annotations

import copy
import enum
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from k3s_harness.constants import KUBECONFIG_SECTIONS
from k3s_harness.errors import MalformedStateError, NotReadyError


# ============================================================================
# Cluster handle
# ============================================================================

class ClusterState(str, enum.Enum):
    """Lifecycle state of a cluster instance."""

    STARTING = "Starting"
    READY = "Ready"
    STOPPING = "Stopping"
    STOPPED = "Stopped"


@dataclass(frozen=True)
class ClusterCredentials:
    """Client configuration extracted from the cluster's kubeconfig.

    Attributes:
        raw: Kubeconfig exactly as read from the cluster.
        kubeconfig: Kubeconfig with the API server rewritten to the host endpoint.
        api_version: Document ``apiVersion``.
        kind: Document ``kind``.
        cluster_names: Names under ``clusters``.
        user_names: Names under ``users``.
        context_names: Names under ``contexts``.
        current_context: Value of ``current-context``, if set.
        server: API server URL reachable from the host.
    """

    raw: str = field(repr=False)
    kubeconfig: str = field(repr=False)
    api_version: str
    kind: str
    cluster_names: tuple[str, ...]
    user_names: tuple[str, ...]
    context_names: tuple[str, ...]
    current_context: str | None
    server: str | None

    @classmethod
    def from_kubeconfig(cls, text: str, server: str | None = None) -> ClusterCredentials:
        """Parse a kubeconfig document.

        Args:
            text: Kubeconfig YAML.
            server: Replacement API server URL for every cluster entry, or None
                to keep the document's own.

        Returns:
            Parsed credentials.

        Raises:
            MalformedStateError: If the text is not YAML or lacks a required section.
        """
        try:
            doc = yaml.safe_load(text)
        except yaml.YAMLError as err:
            raise MalformedStateError("Kubeconfig is not valid YAML", str(err)) from err
        if not isinstance(doc, dict):
            raise MalformedStateError("Kubeconfig is not a mapping")
        missing = [key for key in KUBECONFIG_SECTIONS if key not in doc]
        if missing:
            raise MalformedStateError("Kubeconfig is missing sections", ", ".join(missing))
        for key in ("clusters", "users", "contexts"):
            if not isinstance(doc[key], list):
                raise MalformedStateError(f"Kubeconfig section '{key}' is not a list")

        rewritten = copy.deepcopy(doc)
        if server is not None:
            for entry in rewritten["clusters"]:
                cluster = entry.get("cluster") if isinstance(entry, dict) else None
                if isinstance(cluster, dict):
                    cluster["server"] = server

        first = rewritten["clusters"][0] if rewritten["clusters"] else {}
        return cls(
            raw=text,
            kubeconfig=yaml.safe_dump(rewritten, default_flow_style=False, sort_keys=False),
            api_version=str(doc["apiVersion"]),
            kind=str(doc["kind"]),
            cluster_names=_names(doc["clusters"]),
            user_names=_names(doc["users"]),
            context_names=_names(doc["contexts"]),
            current_context=doc.get("current-context"),
            server=(first.get("cluster") or {}).get("server") if isinstance(first, dict) else None,
        )

    def write(self, path: Path) -> Path:
        """Write the host-facing kubeconfig to ``path`` with 0600 permissions."""
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.kubeconfig)
        path.chmod(0o600)
        return path


def _names(entries: list) -> tuple[str, ...]:
    return tuple(str(e["name"]) for e in entries if isinstance(e, dict) and "name" in e)


@dataclass(eq=False)
class ClusterHandle:
    """One cluster instance. State transitions belong to ClusterLifecycle.

    Attributes:
        id: Opaque identifier, also used as the container name.
        image: Image reference the cluster was started from.
        state: Current lifecycle state.
        container_id: Engine container id once started.
        credentials: Extracted kubeconfig, set once the cluster is Ready.
    """

    id: str
    image: str
    state: ClusterState = ClusterState.STARTING
    container_id: str | None = None
    credentials: ClusterCredentials | None = field(default=None, repr=False)

    @property
    def is_ready(self) -> bool:
        """Whether the cluster accepts commands."""
        return self.state is ClusterState.READY

    def require_ready(self, operation: str) -> None:
        """Raise NotReadyError unless the handle is Ready.

        Args:
            operation: Name of the attempted operation, for the message.
        """
        if not self.is_ready:
            raise NotReadyError(
                f"Cannot {operation}: cluster '{self.id}' is {self.state.value}",
                "Acquire the cluster and wait for Ready before issuing commands.",
            )


# ============================================================================
# Commands and results
# ============================================================================

@dataclass(frozen=True)
class CommandSpec:
    """A command to run inside the cluster.

    Attributes:
        argv: Command and arguments.
        stdin: Optional payload piped to the command, e.g. manifest text.
        redact: Values masked when the command is logged.
    """

    argv: tuple[str, ...]
    stdin: str | None = None
    redact: tuple[str, ...] = field(default=(), compare=False, repr=False)

    def __post_init__(self) -> None:
        argv = tuple(self.argv)
        if not argv:
            raise ValueError("CommandSpec requires at least one argument")
        if not all(isinstance(arg, str) for arg in argv):
            raise TypeError("CommandSpec arguments must be strings")
        object.__setattr__(self, "argv", argv)
        object.__setattr__(self, "redact", tuple(self.redact))

    @classmethod
    def of(cls, *argv: str, stdin: str | None = None) -> CommandSpec:
        """Build a spec from positional argv, e.g. ``CommandSpec.of("kubectl", "get", "pods")``."""
        return cls(argv=argv, stdin=stdin)

    @property
    def stdin_bytes(self) -> bytes | None:
        """The stdin payload encoded as UTF-8, or None when there is none."""
        return None if self.stdin is None else self.stdin.encode("utf-8")


@dataclass(frozen=True)
class ExecResult:
    """Outcome of one CommandExecutor.run call.

    Attributes:
        exit_code: Process exit code.
        stdout: Captured standard output.
        stderr: Captured standard error.
        duration: Wall-clock seconds spent in the call.
    """

    exit_code: int
    stdout: str
    stderr: str
    duration: float

    @property
    def ok(self) -> bool:
        return self.exit_code == 0
