"""Tests for the typed client errors."""

import httpx
import pytest

from dhis2_api.errors import (
    AuthenticationError,
    Dhis2ClientError,
    ErrorKind,
    JobTimeoutError,
    NotFoundError,
    RequestError,
    ServerError,
    error_for_response,
    raise_for_response,
)


@pytest.mark.parametrize(
    ("status", "error_type", "kind"),
    [
        (400, RequestError, ErrorKind.REQUEST),
        (401, AuthenticationError, ErrorKind.AUTHENTICATION),
        (403, AuthenticationError, ErrorKind.AUTHENTICATION),
        (404, NotFoundError, ErrorKind.NOT_FOUND),
        (500, ServerError, ErrorKind.SERVER),
        (502, ServerError, ErrorKind.SERVER),
    ],
)
def test_error_for_status(status: int, error_type: type[Dhis2ClientError], kind: ErrorKind) -> None:
    error = error_for_response(httpx.Response(status))
    assert type(error) is error_type
    assert error.kind is kind
    assert error.status_code == status


def test_server_message_is_used() -> None:
    response = httpx.Response(409, json={"httpStatus": "Conflict", "message": "Duplicate code"})
    error = error_for_response(response)
    assert error.message == "Duplicate code"
    assert str(error) == "Duplicate code (HTTP 409)"


def test_fallback_message_names_request() -> None:
    request = httpx.Request("GET", "https://dhis2.test/api/dataElements/x")
    error = error_for_response(httpx.Response(404, request=request, text="Not here"))
    assert error.message == "GET https://dhis2.test/api/dataElements/x failed"


def test_raise_for_response() -> None:
    raise_for_response(httpx.Response(204))
    with pytest.raises(AuthenticationError):
        raise_for_response(httpx.Response(401))


def test_job_timeout_is_a_timeout_error() -> None:
    error = JobTimeoutError("Job abc did not complete within 10s")
    assert isinstance(error, TimeoutError)
    assert error.kind is ErrorKind.TIMEOUT
    assert str(error) == "Job abc did not complete within 10s"
