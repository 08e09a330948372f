"""Tests for environment configuration."""

from __future__ import annotations

from pathlib import Path

import pytest

from nvremote.config import DEFAULT_FINGERPRINT_PATH, ClientConfig
from nvremote.messages import Role


def test_defaults():
    cfg = ClientConfig.from_env({})
    assert cfg.key is None
    assert cfg.host == "nvdaremote.com"
    assert cfg.port == 6837
    assert cfg.role is Role.SLAVE
    assert cfg.fingerprint_path == DEFAULT_FINGERPRINT_PATH
    assert cfg.log_level == "INFO"
    assert cfg.poll_interval == 0.1


def test_everything_from_env(tmp_path: Path):
    cfg = ClientConfig.from_env(
        {
            "NVREMOTE_KEY": "secret",
            "NVREMOTE_HOST": "relay.example",
            "NVREMOTE_PORT": "7000",
            "NVREMOTE_ROLE": "MASTER",
            "NVREMOTE_FINGERPRINTS": str(tmp_path / "pins.json"),
            "NVREMOTE_LOG_LEVEL": "debug",
            "NVREMOTE_POLL_INTERVAL": "0",
        }
    )
    assert cfg.key == "secret"
    assert cfg.host == "relay.example"
    assert cfg.port == 7000
    assert cfg.role is Role.MASTER
    assert cfg.fingerprint_path == tmp_path / "pins.json"
    assert cfg.log_level == "DEBUG"
    assert cfg.poll_interval == 0.0


@pytest.mark.parametrize(
    "env, name",
    [
        ({"NVREMOTE_PORT": "abc"}, "NVREMOTE_PORT"),
        ({"NVREMOTE_PORT": "70000"}, "NVREMOTE_PORT"),
        ({"NVREMOTE_ROLE": "observer"}, "NVREMOTE_ROLE"),
        ({"NVREMOTE_POLL_INTERVAL": "soon"}, "NVREMOTE_POLL_INTERVAL"),
        ({"NVREMOTE_POLL_INTERVAL": "-1"}, "NVREMOTE_POLL_INTERVAL"),
    ],
)
def test_bad_values_name_the_variable(env, name):
    with pytest.raises(ValueError, match=name):
        ClientConfig.from_env(env)


def test_reads_os_environ_by_default(monkeypatch):
    monkeypatch.setenv("NVREMOTE_HOST", "env.example")
    assert ClientConfig.from_env().host == "env.example"
