"""Environment-driven settings and API key resolution."""

import os
from unittest.mock import patch

from explain import globals as g


def test_config_path_default(monkeypatch):
    monkeypatch.delenv("EXPLAIN_CONFIG", raising=False)
    assert g.config_path() == g.DEFAULT_CONFIG_FILE
    assert g.DEFAULT_CONFIG_FILE.endswith(".explain.json")


def test_config_path_override(monkeypatch, tmp_path):
    monkeypatch.setenv("EXPLAIN_CONFIG", str(tmp_path / "state.json"))
    assert g.config_path() == os.path.join(str(tmp_path), "state.json")


def test_request_timeout(monkeypatch):
    monkeypatch.delenv("EXPLAIN_TIMEOUT", raising=False)
    assert g.request_timeout() is None
    monkeypatch.setenv("EXPLAIN_TIMEOUT", "30")
    assert g.request_timeout() == 30.0
    monkeypatch.setenv("EXPLAIN_TIMEOUT", "soon")
    assert g.request_timeout() is None
    monkeypatch.setenv("EXPLAIN_TIMEOUT", "-1")
    assert g.request_timeout() is None


@patch("explain.globals.get_password")
def test_stored_key_wins(mock_get_pass, monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
    assert g.retrieve_key("sk-stored") == "sk-stored"
    mock_get_pass.assert_not_called()


@patch("explain.globals.get_password")
def test_env_key_before_keyring(mock_get_pass, monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
    assert g.retrieve_key("") == "sk-env"
    mock_get_pass.assert_not_called()


@patch("explain.globals.get_password")
def test_keyring_key_last(mock_get_pass, monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    mock_get_pass.return_value = "sk-keyring"
    assert g.retrieve_key("") == "sk-keyring"
    mock_get_pass.assert_called_with("explain", g.USER_NAME)


@patch("explain.globals.get_password", side_effect=RuntimeError("no backend"))
def test_no_key_anywhere(mock_get_pass, monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    assert g.retrieve_key("") == ""
