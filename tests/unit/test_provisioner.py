"""Tests for registry pull-secret provisioning."""

import logging

import pytest

from k3s_harness.config import RegistryConfig
from k3s_harness.engine import EngineExec
from k3s_harness.errors import ProvisionError
from k3s_harness.provisioner import ProvisionResult, RegistryCredentialProvisioner


@pytest.fixture
def provisioner(executor):
    return RegistryCredentialProvisioner(executor)


@pytest.fixture
def complete(clean_env):
    return RegistryConfig(server="ghcr.io", username="bot", password="hunter2")


def test_no_credentials_skips_without_commands(fake_engine, provisioner, ready_handle, clean_env):
    result = provisioner.provision(ready_handle, RegistryConfig())

    assert result is ProvisionResult.SKIPPED
    assert fake_engine.commands == []


def test_partial_credentials_warn_and_skip(fake_engine, provisioner, ready_handle, clean_env, caplog):
    credentials = RegistryConfig(server="ghcr.io", username="bot")

    with caplog.at_level(logging.WARNING, logger="k3s_harness"):
        result = provisioner.provision(ready_handle, credentials)

    assert result is ProvisionResult.SKIPPED
    assert fake_engine.commands == []
    assert "password" in caplog.text


def test_complete_credentials_create_secret(fake_engine, provisioner, ready_handle, complete):
    result = provisioner.provision(ready_handle, complete)

    assert result is ProvisionResult.CREATED
    assert len(fake_engine.commands) == 1
    argv, _ = fake_engine.commands[0]
    assert argv[:5] == ["kubectl", "create", "secret", "docker-registry", "regcred"]
    assert "--docker-server=ghcr.io" in argv
    assert "--docker-email=test@example.com" in argv
    assert argv[-2:] == ["-n", "default"]


def test_failure_raises_with_stderr_after_one_attempt(fake_engine, provisioner, ready_handle, complete):
    fake_engine.queue.append(EngineExec(1, "", 'error: secrets "regcred" already exists\n'))

    with pytest.raises(ProvisionError) as exc_info:
        provisioner.provision(ready_handle, complete)

    assert "already exists" in exc_info.value.stderr
    assert len(fake_engine.commands) == 1


def test_password_never_logged(fake_engine, provisioner, ready_handle, complete, caplog):
    with caplog.at_level(logging.DEBUG, logger="k3s_harness"):
        provisioner.provision(ready_handle, complete)

    assert "hunter2" not in caplog.text


def test_custom_secret_name_and_namespace(fake_engine, executor, ready_handle, complete):
    RegistryCredentialProvisioner(executor, secret_name="pull", namespace="ci").provision(ready_handle, complete)

    argv, _ = fake_engine.commands[0]
    assert argv[4] == "pull"
    assert argv[-2:] == ["-n", "ci"]
