"""Shared fixtures for the EKS harness tests."""

import pytest
import yaml
from unittest.mock import Mock

from eks_harness.core.aws_client import AWSClientManager


OVERRIDE_ENV_VARS = ("AWS_REGION", "AWS_PROFILE", "TERRAFORM_DIR", "SKIP_TEARDOWN", "TEST_REGION")


@pytest.fixture(autouse=True)
def clean_override_env(request, monkeypatch):
    """Keep the developer's AWS environment out of unit tests."""
    if request.node.get_closest_marker("integration"):
        return
    for name in OVERRIDE_ENV_VARS:
        # record the original value so teardown restores it
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)


@pytest.fixture
def module_dir(tmp_path):
    """Empty directory standing in for the Terraform module."""
    path = tmp_path / "module"
    path.mkdir()
    return path


@pytest.fixture
def write_config(tmp_path, module_dir):
    """Write a YAML config and return its path; terraform.dir defaults to module_dir."""

    def _write(data=None):
        config_data = {"terraform": {"dir": str(module_dir)}}
        if data:
            for key, value in data.items():
                if isinstance(value, dict) and isinstance(config_data.get(key), dict):
                    config_data[key].update(value)
                else:
                    config_data[key] = value
        path = tmp_path / "config.yaml"
        path.write_text(yaml.dump(config_data), encoding="utf-8")
        return str(path)

    return _write


@pytest.fixture
def mock_aws_client():
    """Mock AWS client manager."""
    client = Mock(spec=AWSClientManager)
    client.profile_name = None
    client.get_current_region.return_value = "us-west-2"
    client.get_account_id.return_value = "123456789012"
    return client
