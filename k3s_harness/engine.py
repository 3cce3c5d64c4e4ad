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

"""Container engine boundary and its Docker implementation."""

from __future__ import annotations

import io
import posixpath
import tarfile
import threading
import uuid
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from typing import NamedTuple, Protocol
from urllib.parse import urlparse

import docker
from docker.errors import DockerException, NotFound
from docker.models.containers import Container

from k3s_harness import logger
from k3s_harness.constants import STDIN_FILE_PREFIX, STDIN_STAGING_DIR
from k3s_harness.errors import ExecutionChannelError

# Runs "$@" with stdin redirected from the staged file in $0, then removes it.
_STDIN_WRAPPER = '"$@" < "$0"; rc=$?; rm -f "$0"; exit $rc'


class EngineExec(NamedTuple):
    """Raw outcome of a command run through the engine."""

    exit_code: int
    stdout: str
    stderr: str


class ContainerEngine(Protocol):
    """Operations the harness needs from a container runtime."""

    @property
    def host(self) -> str: ...

    def start(
        self,
        image: str,
        *,
        name: str,
        command: Sequence[str],
        ports: Sequence[int] = (),
        tmpfs: Sequence[str] = (),
        labels: Mapping[str, str] | None = None,
        privileged: bool = False,
    ) -> str: ...

    def stop(self, container_id: str, timeout: float) -> None: ...

    def exec(self, container_id: str, argv: Sequence[str], stdin: bytes | None = None) -> EngineExec: ...

    def logs(self, container_id: str) -> str: ...

    def status(self, container_id: str) -> str: ...

    def host_port(self, container_id: str, container_port: int) -> int: ...


@contextmanager
def _docker_errors(action: str) -> Iterator[None]:
    """Translate Docker SDK and socket failures into ExecutionChannelError."""
    try:
        yield
    except (DockerException, OSError) as err:
        raise ExecutionChannelError(f"Docker {action} failed", str(err)) from err


def _tar_single_file(name: str, data: bytes) -> bytes:
    """Pack ``data`` as a one-file tar archive for ``put_archive``."""
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w") as tar:
        info = tarfile.TarInfo(name=name)
        info.size = len(data)
        info.mode = 0o600
        tar.addfile(info, io.BytesIO(data))
    return buf.getvalue()


class DockerEngine:
    """ContainerEngine backed by the local Docker daemon.

    The client is created lazily from the environment (``DOCKER_HOST`` etc.)
    unless one is passed in.
    """

    def __init__(self, client: docker.DockerClient | None = None) -> None:
        self._client = client
        self._lock = threading.Lock()

    @property
    def client(self) -> docker.DockerClient:
        with self._lock:
            if self._client is None:
                with _docker_errors("connect"):
                    self._client = docker.from_env()
            return self._client

    @property
    def host(self) -> str:
        """Host name where published container ports are reachable."""
        parsed = urlparse(self.client.api.base_url)
        if parsed.scheme.startswith("http+") or parsed.hostname in (None, "localhost", "localunixsocket"):
            return "127.0.0.1"
        return parsed.hostname

    def _container(self, container_id: str) -> Container:
        with _docker_errors("inspect"):
            try:
                return self.client.containers.get(container_id)
            except NotFound as err:
                raise ExecutionChannelError(f"Container {container_id[:12]} not found", str(err)) from err

    def start(
        self,
        image: str,
        *,
        name: str,
        command: Sequence[str],
        ports: Sequence[int] = (),
        tmpfs: Sequence[str] = (),
        labels: Mapping[str, str] | None = None,
        privileged: bool = False,
    ) -> str:
        """Run ``image`` detached and return the container id.

        Each port in ``ports`` is published on a random host port.
        """
        logger.debug("Starting container %s from %s", name, image)
        with _docker_errors("start"):
            container = self.client.containers.run(
                image,
                command=list(command),
                name=name,
                detach=True,
                privileged=privileged,
                ports={f"{port}/tcp": None for port in ports},
                tmpfs={path: "" for path in tmpfs},
                labels=dict(labels or {}),
            )
        return container.id

    def stop(self, container_id: str, timeout: float) -> None:
        """Stop and remove the container. A missing container is not an error."""
        with _docker_errors("stop"):
            try:
                container = self.client.containers.get(container_id)
            except NotFound:
                logger.debug("Container %s already removed", container_id[:12])
                return
            container.stop(timeout=max(int(timeout), 1))
            container.remove(force=True, v=True)

    def exec(self, container_id: str, argv: Sequence[str], stdin: bytes | None = None) -> EngineExec:
        """Run ``argv`` inside the container with separate stdout/stderr.

        A stdin payload is staged as a file inside the container and
        redirected into the command.
        """
        container = self._container(container_id)
        cmd = list(argv)
        with _docker_errors("exec"):
            if stdin is not None:
                staged = f"{STDIN_FILE_PREFIX}{uuid.uuid4().hex}"
                container.put_archive(STDIN_STAGING_DIR, _tar_single_file(staged, stdin))
                cmd = ["sh", "-c", _STDIN_WRAPPER, posixpath.join(STDIN_STAGING_DIR, staged), *cmd]
            exit_code, output = container.exec_run(cmd, demux=True)
        if exit_code is None:
            raise ExecutionChannelError(f"Docker exec returned no exit code for {cmd[0]!r}")
        stdout, stderr = output if output is not None else (None, None)
        return EngineExec(
            exit_code=int(exit_code),
            stdout=(stdout or b"").decode("utf-8", errors="replace"),
            stderr=(stderr or b"").decode("utf-8", errors="replace"),
        )

    def logs(self, container_id: str) -> str:
        container = self._container(container_id)
        with _docker_errors("logs"):
            return container.logs(stdout=True, stderr=True).decode("utf-8", errors="replace")

    def status(self, container_id: str) -> str:
        container = self._container(container_id)
        return container.status

    def host_port(self, container_id: str, container_port: int) -> int:
        """Return the host port published for ``container_port``."""
        container = self._container(container_id)
        bindings = (container.ports or {}).get(f"{container_port}/tcp")
        if not bindings:
            raise ExecutionChannelError(f"Port {container_port} is not published on {container_id[:12]}")
        return int(bindings[0]["HostPort"])
