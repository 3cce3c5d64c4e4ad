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

"""Configuration classes and config models."""

from __future__ import annotations

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from k3s_harness.constants import (
    DEFAULT_EXEC_TIMEOUT,
    DEFAULT_K3S_IMAGE,
    DEFAULT_NAME_PREFIX,
    DEFAULT_READINESS_POLL_INTERVAL,
    DEFAULT_REGISTRY_EMAIL,
    DEFAULT_SERVER_ARGS,
    DEFAULT_STARTUP_TIMEOUT,
    DEFAULT_STOP_TIMEOUT,
)


# ============================================================================
# Configuration classes
# ============================================================================

class ClusterConfig(BaseSettings):
    """K3s cluster configuration, auto-loaded from K3S_HARNESS_* env vars.

    Attributes:
        image: K3s container image reference.
        startup_timeout: Seconds to wait for control-plane readiness.
        stop_timeout: Seconds allowed for teardown of the container.
        exec_timeout: Default seconds allowed for a single command.
        readiness_poll_interval: Seconds between readiness checks.
        name_prefix: Prefix for container names.
        server_args: Extra arguments passed to ``k3s server``.
        privileged: Whether to run the container privileged (K3s needs it).
    """

    model_config = SettingsConfigDict(env_prefix="K3S_HARNESS_", extra="ignore")

    image: str = DEFAULT_K3S_IMAGE
    startup_timeout: float = Field(default=DEFAULT_STARTUP_TIMEOUT, gt=0)
    stop_timeout: float = Field(default=DEFAULT_STOP_TIMEOUT, gt=0)
    exec_timeout: float = Field(default=DEFAULT_EXEC_TIMEOUT, gt=0)
    readiness_poll_interval: float = Field(default=DEFAULT_READINESS_POLL_INTERVAL, ge=0)
    name_prefix: str = Field(default=DEFAULT_NAME_PREFIX, pattern=r"^[a-zA-Z0-9][a-zA-Z0-9_.-]*$")
    server_args: list[str] = Field(default_factory=lambda: list(DEFAULT_SERVER_ARGS))
    privileged: bool = True


class RegistryConfig(BaseSettings):
    """Private registry credentials, auto-loaded from REGISTRY_* env vars.

    Each field is optional. Provisioning happens only when server, username
    and password are all set; email falls back to a placeholder.

    Attributes:
        server: Registry host, e.g. ``ghcr.io``.
        username: Registry user name.
        password: Registry password or token.
        email: Contact email stored in the secret.
    """

    model_config = SettingsConfigDict(env_prefix="REGISTRY_", extra="ignore")

    server: str | None = None
    username: str | None = None
    password: SecretStr | None = None
    email: str | None = None

    @field_validator("server", "username", "password", "email", mode="before")
    @classmethod
    def _blank_is_absent(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def is_complete(self) -> bool:
        """True when server, username and password are all present."""
        return all(v is not None for v in (self.server, self.username, self.password))

    @property
    def is_partial(self) -> bool:
        """True when some, but not all, of the required fields are present."""
        present = [v is not None for v in (self.server, self.username, self.password)]
        return any(present) and not all(present)

    @property
    def missing_fields(self) -> list[str]:
        """Names of the required fields that are absent."""
        return [
            name for name in ("server", "username", "password")
            if getattr(self, name) is None
        ]

    @property
    def email_or_default(self) -> str:
        return self.email or DEFAULT_REGISTRY_EMAIL
