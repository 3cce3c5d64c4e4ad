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

"""Constants shared by the cluster lifecycle, executor, and smoke suite."""

from __future__ import annotations

# -- K3s container defaults --
DEFAULT_K3S_IMAGE = "rancher/k3s:v1.31.2-k3s1"
DEFAULT_NAME_PREFIX = "k3s-harness"
DEFAULT_SERVER_ARGS = ("--disable=traefik",)
K3S_API_PORT = 6443
K3S_TMPFS_MOUNTS = ("/run", "/var/run")
K3S_KUBECONFIG_PATH = "/etc/rancher/k3s/k3s.yaml"
K3S_READY_LOG_MARKER = "Node controller sync successful"
K3S_CONTAINER_LABEL = "io.k3s-harness.cluster"

# -- Timeouts (seconds) --
DEFAULT_STARTUP_TIMEOUT = 180.0
DEFAULT_STOP_TIMEOUT = 30.0
STOP_GRACE_SECONDS = 10.0
DEFAULT_EXEC_TIMEOUT = 60.0
DEFAULT_READINESS_POLL_INTERVAL = 1.0

# -- Stdin delivery --
STDIN_STAGING_DIR = "/tmp"
STDIN_FILE_PREFIX = "k3s-harness-stdin-"

# -- Registry pull secret --
PULL_SECRET_NAME = "regcred"
PULL_SECRET_NAMESPACE = "default"
DEFAULT_REGISTRY_EMAIL = "test@example.com"

# -- Namespaces --
NS_DEFAULT = "default"
SYSTEM_NAMESPACES = ("default", "kube-system", "kube-public", "kube-node-lease")

# -- Kubeconfig sections --
KUBECONFIG_SECTIONS = ("apiVersion", "kind", "clusters", "users", "contexts")

# -- Smoke suite --
SMOKE_POLL_INTERVAL_SECONDS = 2.0
SMOKE_POLL_MAX_ELAPSED_SECONDS = 120.0
PRIVATE_IMAGE_REPO = "test-repo"
PRIVATE_IMAGE_NAME = "test-app:latest"
