"""Tests for the convergence helpers."""

import json

import pytest

from k3s_harness import waits
from k3s_harness.engine import EngineExec
from k3s_harness.poller import Converged, Exhausted, Failed, PollPolicy

POLICY = PollPolicy.attempts(5, 0)


def pods(*specs):
    items = [
        {"metadata": {"name": name}, "status": {"phase": phase}}
        for name, phase in specs
    ]
    return EngineExec(0, json.dumps({"items": items}), "")


NOT_FOUND = EngineExec(1, "", 'Error from server (NotFound): deployments.apps "web" not found\n')


@pytest.fixture
def wait_args(executor, ready_handle, no_sleep_poller):
    return executor, ready_handle, no_sleep_poller


def test_wait_for_pod_listed(fake_engine, wait_args):
    executor, handle, poller = wait_args
    fake_engine.queue += [pods(), pods(("other", "Running")), pods(("test-pod", "Pending"))]

    outcome = waits.wait_for_pod(executor, handle, "test-pod", POLICY, poller=poller)

    assert isinstance(outcome, Converged)
    assert outcome.attempts == 3


def test_wait_for_pod_phase_filter(fake_engine, wait_args):
    executor, handle, poller = wait_args
    fake_engine.queue += [pods(("test-pod", "Pending")), pods(("test-pod", "Running"))]

    outcome = waits.wait_for_pod(executor, handle, "test-pod", POLICY, phase="Running", poller=poller)

    assert outcome.attempts == 2


def test_wait_for_pod_count(fake_engine, wait_args):
    executor, handle, poller = wait_args
    fake_engine.queue += [pods(("a", "Pending")), pods(("a", "Running"), ("b", "Running"), ("c", "Pending"))]

    outcome = waits.wait_for_pod_count(executor, handle, "app=nginx", 3, POLICY, poller=poller)

    assert isinstance(outcome, Converged)
    argv, _ = fake_engine.commands[-1]
    assert argv[argv.index("-l") + 1] == "app=nginx"


def test_wait_for_pod_phase_needs_at_least_one_pod(fake_engine, wait_args):
    executor, handle, poller = wait_args
    fake_engine.responder = lambda argv, stdin: pods()

    outcome = waits.wait_for_pod_phase(executor, handle, "app=x", "Running", PollPolicy.attempts(3, 0), poller=poller)

    assert isinstance(outcome, Exhausted)
    assert outcome.attempts == 3


def test_not_found_counts_as_not_yet(fake_engine, wait_args):
    """Test that a failing query keeps polling instead of failing."""
    executor, handle, poller = wait_args
    ready = EngineExec(0, json.dumps({
        "metadata": {"name": "web"}, "spec": {"replicas": 2}, "status": {"readyReplicas": 2},
    }), "")
    fake_engine.queue += [NOT_FOUND, NOT_FOUND, ready]

    outcome = waits.wait_for_ready_replicas(executor, handle, "web", POLICY, poller=poller)

    assert isinstance(outcome, Converged)
    assert outcome.attempts == 3


def test_malformed_output_fails(fake_engine, wait_args):
    executor, handle, poller = wait_args
    fake_engine.queue.append(EngineExec(0, "<html>proxy error</html>", ""))

    outcome = waits.wait_for_pod_count(executor, handle, "app=nginx", 1, POLICY, poller=poller)

    assert isinstance(outcome, Failed)
    assert len(fake_engine.commands) == 1


def test_wait_for_endpoints(fake_engine, wait_args):
    executor, handle, poller = wait_args
    empty = EngineExec(0, json.dumps({"metadata": {"name": "svc"}}), "")
    filled = EngineExec(0, json.dumps({
        "metadata": {"name": "svc"}, "subsets": [{"addresses": [{"ip": "10.42.0.9"}]}],
    }), "")
    fake_engine.queue += [empty, filled]

    outcome = waits.wait_for_endpoints(executor, handle, "svc", POLICY, poller=poller)

    assert isinstance(outcome, Converged)
    assert outcome.attempts == 2
