"""DHIS2 credentials block."""

from __future__ import annotations

import logging

from prefect.blocks.core import Block
from pydantic import Field, SecretStr

from dhis2_api.client import Dhis2
from dhis2_api.config import DEFAULT_POLL_INTERVAL, DEFAULT_POLL_TIMEOUT, DEFAULT_TIMEOUT, DEFAULT_URL, Dhis2Config

logger = logging.getLogger(__name__)


class Dhis2Credentials(Block):
    """Credentials block for a DHIS2 instance.

    Stores connection details (URL, username, password) and polling
    settings, and returns an authenticated ``Dhis2`` client via
    ``get_client()``.
    """

    _block_type_name = "dhis2-credentials"
    _block_type_slug = "dhis2-credentials"
    _description = "Credentials and job polling settings for a DHIS2 instance."

    base_url: str = Field(default=DEFAULT_URL, description="DHIS2 instance base URL")
    username: str = Field(default="admin", description="DHIS2 username")
    password: SecretStr = Field(
        default=SecretStr("district"),
        description="DHIS2 password",
    )
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0, description="HTTP timeout in seconds")
    poll_interval: float = Field(default=DEFAULT_POLL_INTERVAL, gt=0, description="Seconds between job polls")
    poll_timeout: float = Field(default=DEFAULT_POLL_TIMEOUT, gt=0, description="Maximum seconds to poll a job")

    def get_config(self) -> Dhis2Config:
        return Dhis2Config.basic(
            self.base_url,
            self.username,
            self.password.get_secret_value(),
            timeout=self.timeout,
            poll_interval=self.poll_interval,
            poll_timeout=self.poll_timeout,
        )

    def get_client(self) -> Dhis2:
        """Return an authenticated ``Dhis2`` client."""
        return Dhis2(self.get_config())


def get_dhis2_credentials(name: str = "dhis2") -> Dhis2Credentials:
    """Load a DHIS2 credentials block, falling back to inline defaults.

    Attempts to load a saved block with the given *name* from the Prefect
    server.  If no saved block is found (or the server is unreachable),
    returns a fresh ``Dhis2Credentials`` instance with default play-server
    values.

    Args:
        name: Block name to load (default ``"dhis2"``).

    Returns:
        Dhis2Credentials instance.
    """
    try:
        return Dhis2Credentials.load(name)  # type: ignore[return-value]
    except Exception as exc:
        logger.info("No saved DHIS2 credentials block '%s' (%s); using defaults", name, exc)
        return Dhis2Credentials()
