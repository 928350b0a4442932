"""Tests for dhis2_api.config."""

import base64
import os
from unittest.mock import MagicMock, patch

import httpx
import pytest
from pydantic import ValidationError

from dhis2_api.auth import BasicAuthentication, CookieAuthentication
from dhis2_api.config import DEFAULT_MAX_POLL_FAILURES, DEFAULT_POLL_INTERVAL, DEFAULT_URL, Dhis2Config


def _auth_headers(auth: httpx.Auth) -> httpx.Headers:
    request = httpx.Request("GET", "https://dhis2.test/api/system/info")
    return next(auth.sync_auth_flow(request)).headers


def test_trailing_slash_is_removed() -> None:
    config = Dhis2Config.basic("https://dhis2.test/", "admin", "district")
    assert config.url == "https://dhis2.test"
    assert config.api_url == "https://dhis2.test/api"


def test_resolved_url() -> None:
    config = Dhis2Config.basic("https://dhis2.test", "admin", "district")
    assert config.resolved_url("/system/info") == "https://dhis2.test/api/system/info"
    assert config.resolved_url("dataElements") == "https://dhis2.test/api/dataElements"


def test_empty_url_rejected() -> None:
    with pytest.raises(ValidationError):
        Dhis2Config.basic("  ", "admin", "district")


def test_non_positive_poll_settings_rejected() -> None:
    with pytest.raises(ValidationError):
        Dhis2Config.basic("https://dhis2.test", "admin", "district", poll_interval=0)
    with pytest.raises(ValidationError):
        Dhis2Config.basic("https://dhis2.test", "admin", "district", poll_timeout=-1)


def test_defaults() -> None:
    config = Dhis2Config.basic("https://dhis2.test", "admin", "district")
    assert config.poll_interval == DEFAULT_POLL_INTERVAL
    assert config.max_poll_failures == DEFAULT_MAX_POLL_FAILURES


def test_config_is_frozen() -> None:
    config = Dhis2Config.basic("https://dhis2.test", "admin", "district")
    with pytest.raises(ValidationError):
        config.url = "https://other.test"  # type: ignore[misc]


def test_basic_auth_header() -> None:
    config = Dhis2Config.basic("https://dhis2.test", "admin", "district")
    headers = _auth_headers(config.auth)
    assert headers["Authorization"] == "Basic " + base64.b64encode(b"admin:district").decode()
    assert "district" not in repr(config.auth)


def test_cookie_auth_header() -> None:
    config = Dhis2Config.cookie("https://dhis2.test", "abc123")
    assert _auth_headers(config.auth)["Cookie"] == "JSESSIONID=abc123"


@patch("dhis2_api.config.load_dotenv")
def test_from_env_defaults(mock_dotenv: MagicMock) -> None:
    with patch.dict(os.environ, {}, clear=True):
        config = Dhis2Config.from_env()
    mock_dotenv.assert_called_once()
    assert config.url == DEFAULT_URL
    assert isinstance(config.auth, BasicAuthentication)
    assert config.auth.username == "admin"


@patch("dhis2_api.config.load_dotenv")
def test_from_env_overrides(mock_dotenv: MagicMock) -> None:
    env = {
        "DHIS2_BASE_URL": "https://dhis2.example.org/",
        "DHIS2_USERNAME": "importer",
        "DHIS2_PASSWORD": "secret",
        "DHIS2_TIMEOUT": "30",
        "DHIS2_POLL_INTERVAL": "5",
        "DHIS2_POLL_TIMEOUT": "120",
    }
    with patch.dict(os.environ, env, clear=True):
        config = Dhis2Config.from_env()
    assert config.url == "https://dhis2.example.org"
    assert config.auth.username == "importer"  # type: ignore[attr-defined]
    assert config.timeout == 30.0
    assert config.poll_interval == 5.0
    assert config.poll_timeout == 120.0


@patch("dhis2_api.config.load_dotenv")
def test_from_env_session_id_selects_cookie_auth(mock_dotenv: MagicMock) -> None:
    env = {"DHIS2_SESSION_ID": "xyz", "DHIS2_USERNAME": "ignored"}
    with patch.dict(os.environ, env, clear=True):
        config = Dhis2Config.from_env()
    assert isinstance(config.auth, CookieAuthentication)
    assert config.auth.session_id == "xyz"
