"""Tests for the harness exception hierarchy."""

import pytest

from k3s_harness.errors import (
    ConvergenceError,
    ExecutionChannelError,
    HarnessError,
    MalformedStateError,
    NotReadyError,
    ProvisionError,
    StartupTimeoutError,
)


def test_error_with_details():
    """Test that details are appended to the rendered message."""
    error = ExecutionChannelError("Docker exec failed", "connection refused")

    assert error.message == "Docker exec failed"
    assert error.details == "connection refused"
    assert "Docker exec failed" in str(error)
    assert "connection refused" in str(error)


def test_error_without_details():
    """Test that an error without details renders just the message."""
    error = NotReadyError("Cannot run command")

    assert error.details is None
    assert str(error) == "Cannot run command"


@pytest.mark.parametrize(
    "cls",
    [StartupTimeoutError, NotReadyError, ExecutionChannelError, MalformedStateError, ProvisionError, ConvergenceError],
)
def test_exception_hierarchy(cls):
    """Test that every harness error derives from HarnessError."""
    assert issubclass(cls, HarnessError)


def test_provision_error_keeps_stderr():
    """Test that ProvisionError exposes the raw stderr and uses it as details."""
    error = ProvisionError("Failed to create pull secret", "error: secrets \"regcred\" already exists\n")

    assert error.stderr == "error: secrets \"regcred\" already exists\n"
    assert error.details == "error: secrets \"regcred\" already exists"


def test_provision_error_blank_stderr_has_no_details():
    error = ProvisionError("Failed", "   \n")

    assert error.details is None
    assert str(error) == "Failed"
