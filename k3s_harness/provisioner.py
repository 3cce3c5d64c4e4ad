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

"""Image pull-secret provisioning from registry credentials."""

from __future__ import annotations

import enum

from k3s_harness import console, logger
from k3s_harness import kubectl
from k3s_harness.config import RegistryConfig
from k3s_harness.constants import PULL_SECRET_NAME, PULL_SECRET_NAMESPACE
from k3s_harness.executor import CommandExecutor
from k3s_harness.errors import ProvisionError
from k3s_harness.models import ClusterHandle


class ProvisionResult(str, enum.Enum):
    CREATED = "Created"
    SKIPPED = "Skipped"


class RegistryCredentialProvisioner:
    """Creates a docker-registry pull secret when credentials are complete.

    Args:
        executor: Executor used to run ``kubectl create secret``.
        secret_name: Name of the secret to create.
        namespace: Namespace the secret is created in.
    """

    def __init__(
        self,
        executor: CommandExecutor,
        secret_name: str = PULL_SECRET_NAME,
        namespace: str = PULL_SECRET_NAMESPACE,
    ) -> None:
        self._executor = executor
        self.secret_name = secret_name
        self.namespace = namespace

    def provision(self, handle: ClusterHandle, credentials: RegistryConfig) -> ProvisionResult:
        """Create the pull secret, or skip when credentials are incomplete.

        Args:
            handle: A Ready cluster handle.
            credentials: Registry settings, loaded once by the caller.

        Returns:
            CREATED after a successful single attempt, SKIPPED without running
            anything when server, username or password is missing.

        Raises:
            ProvisionError: If ``kubectl create secret`` exits nonzero.
            NotReadyError: If the handle is not Ready.
        """
        if not credentials.is_complete:
            if credentials.is_partial:
                logger.warning(
                    "Registry credentials incomplete (missing %s); skipping pull secret",
                    ", ".join(credentials.missing_fields),
                )
                console.print(
                    "[yellow]\u26a0\ufe0f  Registry credentials are incomplete "
                    f"(missing {', '.join(credentials.missing_fields)}); skipping pull secret[/yellow]"
                )
            else:
                console.print("[yellow]\u2139\ufe0f  No registry credentials provided; skipping pull secret[/yellow]")
            return ProvisionResult.SKIPPED

        spec = kubectl.create_docker_registry_secret(
            self.secret_name,
            server=credentials.server,
            username=credentials.username,
            password=credentials.password.get_secret_value(),
            email=credentials.email_or_default,
            namespace=self.namespace,
        )
        result = self._executor.run(handle, spec)
        if not result.ok:
            raise ProvisionError(
                f"Failed to create pull secret '{self.secret_name}' in '{self.namespace}' "
                f"(exit code {result.exit_code})",
                result.stderr,
            )
        console.print(f"[green]\u2705 Pull secret '{self.secret_name}' created for {credentials.server}[/green]")
        return ProvisionResult.CREATED
