"""Shared fixtures for the offline harness tests."""

import os

import pytest

from harness import config as harness_config_module
from harness.toolchains import ToolchainDistribution
from tests.helpers import TOOL, CountingResolver


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep user/project config files and STAGING_* variables out of tests."""
    for name in list(os.environ):
        if name.startswith("STAGING_"):
            monkeypatch.delenv(name)
    monkeypatch.setattr(harness_config_module, "USER_CONFIG_PATH", tmp_path / "no-user-config.toml")
    harness_config_module.reset_config()
    yield
    harness_config_module.reset_config()


@pytest.fixture
def resolver(tmp_path) -> CountingResolver:
    return CountingResolver(tmp_path / "archives")


@pytest.fixture
def tool() -> ToolchainDistribution:
    return TOOL
