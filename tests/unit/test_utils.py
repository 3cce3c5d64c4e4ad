"""Tests for bounded calls and argv rendering."""

import threading

import pytest

from k3s_harness.utils import CallTimeout, call_with_timeout, format_argv


def test_call_with_timeout_returns_value():
    assert call_with_timeout(lambda a, b=0: a + b, 1.0, 2, b=3) == 5


def test_call_with_timeout_without_budget_runs_inline():
    caller = threading.current_thread()

    assert call_with_timeout(threading.current_thread, None) is caller


def test_call_with_timeout_propagates_exceptions():
    def _boom():
        raise KeyError("missing")

    with pytest.raises(KeyError):
        call_with_timeout(_boom, 1.0)


def test_call_with_timeout_raises_when_budget_elapses():
    release = threading.Event()
    try:
        with pytest.raises(CallTimeout):
            call_with_timeout(release.wait, 0.05, 5)
    finally:
        release.set()


def test_format_argv_quotes_and_redacts():
    rendered = format_argv(["kubectl", "create", "--docker-password=p@ss word"], redact=["p@ss word"])

    assert "p@ss word" not in rendered
    assert "***" in rendered
    assert rendered.startswith("kubectl create")


def test_format_argv_ignores_empty_secret():
    assert format_argv(["echo", "hi"], redact=[""]) == "echo hi"
