"""Tests for the Dhis2Credentials block."""

from __future__ import annotations

from unittest.mock import patch

from dhis2_api import Dhis2, Dhis2Credentials, get_dhis2_credentials
from dhis2_api.auth import BasicAuthentication


class TestDhis2Credentials:
    """Tests for the Dhis2Credentials block."""

    def test_default_values(self) -> None:
        creds = Dhis2Credentials()
        assert creds.base_url == "https://play.im.dhis2.org/dev"
        assert creds.username == "admin"
        assert creds.password.get_secret_value() == "district"
        assert creds.poll_interval == 2.0
        assert creds.poll_timeout == 600.0

    def test_custom_values(self) -> None:
        creds = Dhis2Credentials(
            base_url="https://dhis2.example.org",
            username="user",
            password="secret",
            poll_timeout=30,
        )
        assert creds.base_url == "https://dhis2.example.org"
        assert creds.password.get_secret_value() == "secret"
        assert creds.poll_timeout == 30.0

    def test_get_config(self) -> None:
        creds = Dhis2Credentials(base_url="https://dhis2.example.org/", username="user", poll_interval=5)
        config = creds.get_config()
        assert config.url == "https://dhis2.example.org"
        assert config.poll_interval == 5.0
        assert isinstance(config.auth, BasicAuthentication)
        assert config.auth.username == "user"

    def test_get_client_returns_dhis2(self) -> None:
        client = Dhis2Credentials().get_client()
        assert isinstance(client, Dhis2)
        client.close()

    def test_block_type_slug(self) -> None:
        assert Dhis2Credentials._block_type_slug == "dhis2-credentials"

    def test_block_has_description(self) -> None:
        assert Dhis2Credentials._description

    def test_serialization_round_trip(self) -> None:
        creds = Dhis2Credentials(base_url="https://test.dhis2.org", username="testuser", password="testpass")
        restored = Dhis2Credentials(**creds.model_dump())
        assert restored.base_url == creds.base_url
        assert restored.username == creds.username


def test_get_dhis2_credentials_falls_back_to_defaults() -> None:
    with patch.object(Dhis2Credentials, "load", side_effect=ValueError("Unable to find block document")):
        creds = get_dhis2_credentials("missing")
    assert isinstance(creds, Dhis2Credentials)
    assert creds.base_url == "https://play.im.dhis2.org/dev"


def test_get_dhis2_credentials_uses_saved_block() -> None:
    saved = Dhis2Credentials(base_url="https://saved.dhis2.org")
    with patch.object(Dhis2Credentials, "load", return_value=saved) as mock_load:
        creds = get_dhis2_credentials()
    mock_load.assert_called_once_with("dhis2")
    assert creds.base_url == "https://saved.dhis2.org"
