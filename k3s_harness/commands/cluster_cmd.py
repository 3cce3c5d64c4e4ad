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

"""Cluster subcommands (up, exec)."""

from __future__ import annotations

from pathlib import Path

import typer

from k3s_harness import console
from k3s_harness.commands import IMAGE_OPTION, STARTUP_TIMEOUT_OPTION, build_lifecycle
from k3s_harness.models import CommandSpec


def up(
    image: str | None = IMAGE_OPTION,
    startup_timeout: float | None = STARTUP_TIMEOUT_OPTION,
    kubeconfig: Path | None = typer.Option(
        None, "--kubeconfig", help="Write the kubeconfig here instead of printing it"),
) -> None:
    """Start a cluster, expose its kubeconfig, and tear it down on keypress."""
    lifecycle = build_lifecycle(image, startup_timeout)
    with lifecycle.cluster() as handle:
        credentials = lifecycle.credentials(handle)
        if kubeconfig is not None:
            credentials.write(kubeconfig)
            console.print(f"[green]  \u2713 Kubeconfig written to {kubeconfig}[/green]")
        else:
            typer.echo(credentials.kubeconfig)
        typer.pause("Cluster is running. Press any key to tear it down...")


def exec_(
    args: list[str] = typer.Argument(..., help="Command to run inside the cluster, e.g. kubectl get nodes"),
    image: str | None = IMAGE_OPTION,
    startup_timeout: float | None = STARTUP_TIMEOUT_OPTION,
    timeout: float | None = typer.Option(None, "--timeout", help="Seconds allowed for the command"),
) -> None:
    """Start a cluster, run one command in it, and exit with its exit code."""
    lifecycle = build_lifecycle(image, startup_timeout)
    with lifecycle.cluster() as handle:
        result = lifecycle.executor.run(handle, CommandSpec(argv=tuple(args)), timeout=timeout)
    if result.stdout:
        typer.echo(result.stdout, nl=False)
    if result.stderr:
        typer.echo(result.stderr, nl=False, err=True)
    raise typer.Exit(code=result.exit_code)
