"""Pytest configuration for all tests."""

import pytest


REQUIRED_ENV = {
    "DISCORD_TOKEN": "discord-test-token",
    "GITHUB_TOKEN": "ghp_testtoken",
    "GITHUB_REPOSITORY": "acme/site",
}

OPTIONAL_ENV = [
    "DISCORD_CHANNEL_ID",
    "GITHUB_BASE_URL",
    "GITHUB_BASE_BRANCH",
    "STATE_BACKEND",
    "STATE_PATH",
    "HOST",
    "PORT",
    "LOG_LEVEL",
]


@pytest.fixture
def bot_env(monkeypatch):
    """Set the required bot environment and clear the optional one."""
    for name in OPTIONAL_ENV:
        monkeypatch.delenv(name, raising=False)
    for name, value in REQUIRED_ENV.items():
        monkeypatch.setenv(name, value)
    return monkeypatch
