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

"""Smoke and provisioning subcommands."""

from __future__ import annotations

import typer
from rich.table import Table

from k3s_harness import console
from k3s_harness.commands import IMAGE_OPTION, STARTUP_TIMEOUT_OPTION, build_lifecycle
from k3s_harness.config import RegistryConfig
from k3s_harness.provisioner import RegistryCredentialProvisioner
from k3s_harness.smoke import CheckResult, CheckStatus, SmokeSuite

_STATUS_STYLE = {
    CheckStatus.PASSED: "green",
    CheckStatus.FAILED: "red",
    CheckStatus.SKIPPED: "yellow",
}


def render_results(results: list[CheckResult]) -> Table:
    table = Table(title="Smoke checks")
    table.add_column("Check")
    table.add_column("Status")
    table.add_column("Detail", overflow="fold")
    for result in results:
        style = _STATUS_STYLE[result.status]
        table.add_row(result.name, f"[{style}]{result.status.value}[/{style}]", result.detail)
    return table


def smoke(
    image: str | None = IMAGE_OPTION,
    startup_timeout: float | None = STARTUP_TIMEOUT_OPTION,
) -> None:
    """Run the smoke checks against a fresh cluster."""
    registry = RegistryConfig()
    lifecycle = build_lifecycle(image, startup_timeout)
    with lifecycle.cluster() as handle:
        results = SmokeSuite(lifecycle.executor, handle, registry).run()
    console.print(render_results(results))
    failed = [r for r in results if r.status is CheckStatus.FAILED]
    if failed:
        console.print(f"[red]\u274c {len(failed)} of {len(results)} checks failed[/red]")
        raise typer.Exit(code=1)
    console.print("[green]\u2705 All smoke checks passed[/green]")


def provision(
    image: str | None = IMAGE_OPTION,
    startup_timeout: float | None = STARTUP_TIMEOUT_OPTION,
) -> None:
    """Verify that REGISTRY_* credentials produce a pull secret in a fresh cluster."""
    registry = RegistryConfig()
    lifecycle = build_lifecycle(image, startup_timeout)
    with lifecycle.cluster() as handle:
        outcome = RegistryCredentialProvisioner(lifecycle.executor).provision(handle, registry)
    console.print(f"Pull secret: [bold]{outcome.value}[/bold]")
