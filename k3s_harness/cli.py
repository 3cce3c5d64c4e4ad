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

"""
cli.py - CLI for ephemeral K3s clusters.

Subcommands:
    up         Start a cluster and expose its kubeconfig until a keypress
    exec       Run one command in a fresh cluster
    smoke      Run the smoke checks against a fresh cluster
    provision  Create the registry pull secret from REGISTRY_* credentials

Examples:
    # Run the smoke suite on the default K3s image
    k3s-harness smoke

    # List nodes of a specific K3s version
    k3s-harness exec --image rancher/k3s:v1.30.6-k3s1 -- kubectl get nodes

    # Keep a cluster up and write its kubeconfig
    k3s-harness up --kubeconfig ./k3s.yaml

Environment Variables:
    K3S_HARNESS_IMAGE, K3S_HARNESS_STARTUP_TIMEOUT, K3S_HARNESS_EXEC_TIMEOUT, ...
    REGISTRY_SERVER, REGISTRY_USERNAME, REGISTRY_PASSWORD, REGISTRY_EMAIL
"""

from __future__ import annotations

import logging
import sys

import typer

from k3s_harness import console
from k3s_harness.commands import cluster_cmd, smoke_cmd
from k3s_harness.errors import HarnessError

app = typer.Typer(
    help="Ephemeral K3s clusters for kubectl-driven tests.",
    no_args_is_help=True,
)


@app.callback()
def _main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Initialize logging for all subcommands."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


app.command("up")(cluster_cmd.up)
app.command("exec")(cluster_cmd.exec_)
app.command("smoke")(smoke_cmd.smoke)
app.command("provision")(smoke_cmd.provision)


def main() -> None:
    try:
        app()
    except HarnessError as e:
        console.print(f"[red]\u274c {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
