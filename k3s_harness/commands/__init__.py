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

"""CLI subcommands."""

from __future__ import annotations

import typer

from k3s_harness.config import ClusterConfig
from k3s_harness.lifecycle import ClusterLifecycle

IMAGE_OPTION = typer.Option(None, "--image", help="K3s image (overrides K3S_HARNESS_IMAGE)")
STARTUP_TIMEOUT_OPTION = typer.Option(
    None, "--startup-timeout", help="Seconds to wait for readiness (overrides K3S_HARNESS_STARTUP_TIMEOUT)")


def build_lifecycle(image: str | None, startup_timeout: float | None) -> ClusterLifecycle:
    """Create a ClusterLifecycle from env config plus CLI overrides."""
    cfg = ClusterConfig()
    overrides: dict = {}
    if image is not None:
        overrides["image"] = image
    if startup_timeout is not None:
        overrides["startup_timeout"] = startup_timeout
    if overrides:
        cfg = cfg.model_copy(update=overrides)
    return ClusterLifecycle(config=cfg)
