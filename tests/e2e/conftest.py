"""Fixtures for end-to-end runs against a real Docker daemon.

Set K3S_HARNESS_E2E=1 to enable.
"""

import os

import pytest

from k3s_harness.lifecycle import ClusterLifecycle


def pytest_collection_modifyitems(config, items):
    if os.environ.get("K3S_HARNESS_E2E") == "1":
        return
    skip = pytest.mark.skip(reason="set K3S_HARNESS_E2E=1 to run against Docker")
    for item in items:
        if "e2e" in item.keywords:
            item.add_marker(skip)


@pytest.fixture
def docker_lifecycle():
    return ClusterLifecycle()


@pytest.fixture
def k3s_cluster(docker_lifecycle):
    """One fresh cluster per test, released on every exit path."""
    with docker_lifecycle.cluster() as handle:
        yield handle
