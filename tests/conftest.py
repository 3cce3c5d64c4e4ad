"""Pytest configuration and shared fixtures."""

import pytest
from hypothesis import Verbosity, settings

from k3s_harness.config import ClusterConfig
from k3s_harness.lifecycle import ClusterLifecycle
from k3s_harness.poller import ConvergencePoller

from fakes import FakeClock, FakeEngine

# Configure Hypothesis for property-based testing
settings.register_profile("default", max_examples=100, verbosity=Verbosity.normal)
settings.register_profile("ci", max_examples=1000, verbosity=Verbosity.verbose)
settings.register_profile("dev", max_examples=10, verbosity=Verbosity.verbose)

# Load the default profile
settings.load_profile("default")


@pytest.fixture
def fake_engine():
    return FakeEngine()


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def no_sleep_poller():
    return ConvergencePoller(sleep=lambda seconds: None)


@pytest.fixture
def cluster_config():
    """Cluster settings with short budgets for fake-engine runs."""
    return ClusterConfig(
        startup_timeout=5,
        stop_timeout=1,
        exec_timeout=5,
        readiness_poll_interval=0,
    )


@pytest.fixture
def lifecycle(fake_engine, cluster_config, no_sleep_poller):
    return ClusterLifecycle(engine=fake_engine, config=cluster_config, poller=no_sleep_poller)


@pytest.fixture
def ready_handle(lifecycle):
    """A Ready handle on the fake engine, released after the test."""
    handle = lifecycle.acquire()
    yield handle
    lifecycle.release(handle)


@pytest.fixture
def executor(lifecycle):
    return lifecycle.executor


@pytest.fixture
def clean_env(monkeypatch):
    """Remove harness and registry variables from the environment."""
    import os

    for key in list(os.environ):
        if key.startswith(("K3S_HARNESS_", "REGISTRY_")):
            monkeypatch.delenv(key, raising=False)
    return monkeypatch
