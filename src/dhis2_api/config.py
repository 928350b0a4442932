"""Connection and polling configuration for a DHIS2 instance."""

from __future__ import annotations

import os
from typing import Any

import httpx
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

from dhis2_api.auth import BasicAuthentication, CookieAuthentication

DEFAULT_URL = "https://play.im.dhis2.org/dev"
DEFAULT_TIMEOUT = 60.0
DEFAULT_POLL_INTERVAL = 2.0
DEFAULT_POLL_TIMEOUT = 600.0
DEFAULT_MAX_POLL_FAILURES = 3


class Dhis2Config(BaseModel):
    """Configuration for a DHIS2 instance.

    ``url`` is the instance root, without the ``/api`` part.  A trailing
    slash is removed.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    url: str
    auth: httpx.Auth
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)
    poll_interval: float = Field(default=DEFAULT_POLL_INTERVAL, gt=0)
    poll_timeout: float = Field(default=DEFAULT_POLL_TIMEOUT, gt=0)
    max_poll_failures: int = Field(default=DEFAULT_MAX_POLL_FAILURES, ge=0)

    @field_validator("url")
    @classmethod
    def _normalize_url(cls, value: str) -> str:
        value = value.strip().rstrip("/")
        if not value:
            raise ValueError("url must be specified")
        return value

    @classmethod
    def basic(cls, url: str, username: str, password: str, **kwargs: Any) -> Dhis2Config:
        return cls(url=url, auth=BasicAuthentication(username, password), **kwargs)

    @classmethod
    def cookie(cls, url: str, session_id: str, **kwargs: Any) -> Dhis2Config:
        return cls(url=url, auth=CookieAuthentication(session_id), **kwargs)

    @classmethod
    def from_env(cls) -> Dhis2Config:
        """Build a config from environment variables (and ``.env``).

        ``DHIS2_SESSION_ID`` selects cookie authentication; otherwise
        ``DHIS2_USERNAME``/``DHIS2_PASSWORD`` are used for Basic auth.
        """
        load_dotenv()
        url = os.environ.get("DHIS2_BASE_URL", DEFAULT_URL)
        session_id = os.environ.get("DHIS2_SESSION_ID")
        auth: httpx.Auth
        if session_id:
            auth = CookieAuthentication(session_id)
        else:
            auth = BasicAuthentication(
                os.environ.get("DHIS2_USERNAME", "admin"),
                os.environ.get("DHIS2_PASSWORD", "district"),
            )
        return cls(
            url=url,
            auth=auth,
            timeout=float(os.environ.get("DHIS2_TIMEOUT", DEFAULT_TIMEOUT)),
            poll_interval=float(os.environ.get("DHIS2_POLL_INTERVAL", DEFAULT_POLL_INTERVAL)),
            poll_timeout=float(os.environ.get("DHIS2_POLL_TIMEOUT", DEFAULT_POLL_TIMEOUT)),
        )

    @property
    def api_url(self) -> str:
        return f"{self.url}/api"

    def resolved_url(self, path: str) -> str:
        """Return the fully qualified API URL for *path*."""
        return f"{self.api_url}/{path.lstrip('/')}"
