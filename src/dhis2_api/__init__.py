"""dhis2-api -- DHIS2 REST API client with async import polling."""

from dhis2_api.analytics import AggregationType, AnalyticsQuery, Dimension, IdScheme
from dhis2_api.auth import BasicAuthentication, CookieAuthentication
from dhis2_api.client import Dhis2
from dhis2_api.config import Dhis2Config
from dhis2_api.credentials import Dhis2Credentials, get_dhis2_credentials
from dhis2_api.errors import (
    AuthenticationError,
    DecodeError,
    Dhis2ClientError,
    ErrorKind,
    JobTimeoutError,
    NotFoundError,
    RequestError,
    ServerError,
    TransportError,
)
from dhis2_api.jobs import AsyncJobRunner, JobCategory, JobNotification, JobOutcome, JobReference, JobState
from dhis2_api.query import Direction, Filter, Operator, Order, Paging, Query, parse_query, render_query
from dhis2_api.resources import RESOURCES, ResourceAccessor, ResourceDescriptor

__all__ = [
    "RESOURCES",
    "AggregationType",
    "AnalyticsQuery",
    "AsyncJobRunner",
    "AuthenticationError",
    "BasicAuthentication",
    "CookieAuthentication",
    "DecodeError",
    "Dhis2",
    "Dhis2ClientError",
    "Dhis2Config",
    "Dhis2Credentials",
    "Dimension",
    "Direction",
    "ErrorKind",
    "Filter",
    "IdScheme",
    "JobCategory",
    "JobNotification",
    "JobOutcome",
    "JobReference",
    "JobState",
    "JobTimeoutError",
    "NotFoundError",
    "Operator",
    "Order",
    "Paging",
    "Query",
    "RequestError",
    "ResourceAccessor",
    "ResourceDescriptor",
    "ServerError",
    "TransportError",
    "get_dhis2_credentials",
    "parse_query",
    "render_query",
]
