"""Tests for environment-driven configuration."""

import pytest
from pydantic import ValidationError

from k3s_harness.config import ClusterConfig, RegistryConfig
from k3s_harness.constants import DEFAULT_K3S_IMAGE, DEFAULT_REGISTRY_EMAIL, DEFAULT_STARTUP_TIMEOUT


def test_cluster_config_defaults(clean_env):
    """Test that defaults apply when no K3S_HARNESS_* variables are set."""
    config = ClusterConfig()

    assert config.image == DEFAULT_K3S_IMAGE
    assert config.startup_timeout == DEFAULT_STARTUP_TIMEOUT
    assert config.server_args == ["--disable=traefik"]
    assert config.privileged is True


def test_cluster_config_from_env(clean_env):
    """Test that K3S_HARNESS_* variables override defaults."""
    clean_env.setenv("K3S_HARNESS_IMAGE", "rancher/k3s:v1.30.6-k3s1")
    clean_env.setenv("K3S_HARNESS_STARTUP_TIMEOUT", "90")

    config = ClusterConfig()

    assert config.image == "rancher/k3s:v1.30.6-k3s1"
    assert config.startup_timeout == 90.0


def test_cluster_config_rejects_non_positive_timeout(clean_env):
    with pytest.raises(ValidationError):
        ClusterConfig(startup_timeout=0)


def test_cluster_config_rejects_bad_name_prefix(clean_env):
    with pytest.raises(ValidationError):
        ClusterConfig(name_prefix="-bad name")


def test_registry_config_empty(clean_env):
    """Test that no REGISTRY_* variables means neither complete nor partial."""
    config = RegistryConfig()

    assert not config.is_complete
    assert not config.is_partial
    assert config.missing_fields == ["server", "username", "password"]


def test_registry_config_complete_from_env(clean_env):
    clean_env.setenv("REGISTRY_SERVER", "ghcr.io")
    clean_env.setenv("REGISTRY_USERNAME", "bot")
    clean_env.setenv("REGISTRY_PASSWORD", "s3cret")

    config = RegistryConfig()

    assert config.is_complete
    assert config.password.get_secret_value() == "s3cret"
    assert "s3cret" not in repr(config)
    assert config.email_or_default == DEFAULT_REGISTRY_EMAIL


def test_registry_config_blank_values_are_absent(clean_env):
    """Test that empty or whitespace-only variables count as not provided."""
    clean_env.setenv("REGISTRY_SERVER", "ghcr.io")
    clean_env.setenv("REGISTRY_USERNAME", "  ")
    clean_env.setenv("REGISTRY_PASSWORD", "")

    config = RegistryConfig()

    assert config.username is None
    assert config.password is None
    assert config.is_partial
    assert config.missing_fields == ["username", "password"]


def test_registry_config_explicit_email(clean_env):
    config = RegistryConfig(server="ghcr.io", username="bot", password="x", email="ci@example.org")

    assert config.email_or_default == "ci@example.org"
