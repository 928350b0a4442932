"""DHIS2 API client."""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Sequence
from http import HTTPStatus
from pathlib import Path
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from dhis2_api.analytics import AnalyticsQuery
from dhis2_api.config import Dhis2Config
from dhis2_api.errors import DecodeError, TransportError, error_for_response, raise_for_response
from dhis2_api.jobs import AsyncJobRunner, JobCategory, JobNotification, JobReference
from dhis2_api.models import (
    DataValueSet,
    DataValueSetImportOptions,
    DataValueSetResponse,
    Dhis2Model,
    EntryMetadata,
    Event,
    EventResponse,
    Events,
    ImportReport,
    ObjectResponse,
    ObjectsResponse,
    OrgUnit,
    OrgUnitLevel,
    OrgUnitMergeRequest,
    OrgUnitSplitRequest,
    Response,
    SystemInfo,
)
from dhis2_api.query import Query
from dhis2_api.resources import ORG_UNIT_FIELDS, RESOURCES, ResourceAccessor

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)
R = TypeVar("R", bound=Dhis2Model)


def _payload(obj: Any) -> Any:
    if isinstance(obj, Dhis2Model):
        return obj.to_json()
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json", exclude_none=True)
    return obj


def _encode(obj: Any) -> bytes:
    return json.dumps(_payload(obj)).encode("utf-8")


def _unwrap_import_summary(body: Any) -> Any:
    """Return the import summary inside a web message, or *body* itself."""
    if isinstance(body, dict):
        inner = body.get("response")
        if isinstance(inner, dict) and ("responseType" in inner or "importCount" in inner or "stats" in inner):
            return inner
    return body


class Dhis2:
    """Authenticated DHIS2 API client.

    Wraps an ``httpx.Client`` scoped to ``<url>/api``.  The client may be
    supplied by the caller (it is then left open on ``close()``) or created
    from the config.  Use as a context manager or call ``.close()``
    explicitly.

    Args:
        config: Connection and polling configuration.
        http: Optional pre-built ``httpx.Client``.  Its ``base_url`` must
            point at the ``/api`` root.
    """

    def __init__(self, config: Dhis2Config, http: httpx.Client | None = None) -> None:
        self.config = config
        self._owns_http = http is None
        self._http = http or httpx.Client(
            base_url=config.api_url,
            auth=config.auth,
            timeout=config.timeout,
            headers={"Accept": "application/json"},
        )

    def __reduce__(self) -> tuple[type, tuple[Dhis2Config]]:
        """Allow pickling so Prefect can hash this object for cache keys."""
        return (Dhis2, (self.config,))

    def __enter__(self) -> Dhis2:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_http:
            self._http.close()

    @property
    def http(self) -> httpx.Client:
        return self._http

    # -----------------------------------------------------------------------
    # Request plumbing
    # -----------------------------------------------------------------------

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            return self._http.request(method, path, **kwargs)
        except httpx.TransportError as exc:
            raise TransportError(f"{method} {path} failed: {exc}") from exc

    def _get_json(self, path: str, params: Sequence[tuple[str, str]] = ()) -> Any:
        resp = self._request("GET", path, params=list(params))
        raise_for_response(resp)
        try:
            return resp.json()
        except ValueError as exc:
            raise DecodeError(f"GET {path} returned invalid JSON: {exc}", resp.status_code) from exc

    @staticmethod
    def _validate(model: type[T], data: Any) -> T:
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            raise DecodeError(f"Unexpected {model.__name__} payload: {exc}") from exc

    def _write(
        self,
        method: str,
        path: str,
        body: Any,
        model: type[R],
        params: Sequence[tuple[str, str]] = (),
    ) -> R:
        """Send a JSON write request and parse the DHIS2 web message.

        409 responses carry an import report describing the conflict and
        are returned rather than raised.
        """
        kwargs: dict[str, Any] = {"params": list(params)}
        if body is not None:
            kwargs["content"] = _encode(body)
            kwargs["headers"] = {"Content-Type": "application/json"}
        resp = self._request(method, path, **kwargs)
        if not (resp.is_success or resp.status_code == 409):
            raise error_for_response(resp)

        if not resp.content:
            data: Any = {}
        else:
            try:
                data = resp.json()
            except ValueError as exc:
                raise DecodeError(f"{method} {path} returned invalid JSON: {exc}", resp.status_code) from exc

        result = self._validate(model, data)
        if "http_status_code" in type(result).model_fields:
            result.http_status_code = resp.status_code  # type: ignore[attr-defined]
        return result

    # -----------------------------------------------------------------------
    # Generic
    # -----------------------------------------------------------------------

    def get_status(self) -> HTTPStatus:
        """Return the HTTP status of ``/api/system/info``.

        ``OK`` when the instance is up and the credentials work,
        ``UNAUTHORIZED`` for bad credentials, ``NOT_FOUND`` when the URL
        does not point at a DHIS2 instance.
        """
        resp = self._request("GET", "system/info")
        return HTTPStatus(resp.status_code)

    def get_dhis2_url(self) -> str:
        return self.config.url

    def object_exists(self, path: str) -> bool:
        """Check with HTTP HEAD whether an object exists at *path*."""
        resp = self._request("HEAD", path)
        return resp.status_code == HTTPStatus.OK

    def get_system_info(self) -> SystemInfo:
        """Fetch /api/system/info -- version, revision, etc."""
        return self._validate(SystemInfo, self._get_json("system/info"))

    def get_system_settings(self) -> dict[str, Any]:
        data = self._get_json("systemSettings")
        if not isinstance(data, dict):
            raise DecodeError("Expected an object of system settings")
        return data

    def get_object(self, path: str, uid: str, model: type[T], fields: str | None = None) -> T:
        """Fetch a single object by id.

        Args:
            path: Collection path (e.g. "dataElements").
            uid: Object identifier.
            model: Model to parse the object into.
            fields: Optional ``fields`` selection.

        Returns:
            The parsed object.
        """
        params = [("fields", fields)] if fields else []
        return self._validate(model, self._get_json(f"{path}/{uid}", params))

    def get_objects(
        self,
        path: str,
        query: Query,
        model: type[T],
        fields: str | None = None,
        key: str | None = None,
        extra_params: Sequence[tuple[str, str]] = (),
    ) -> list[T]:
        """Fetch a list of objects matching *query*.

        Args:
            path: Collection path (e.g. "organisationUnits").
            query: Filters, paging and order.
            model: Model for each object.
            fields: Optional ``fields`` selection.
            key: Key of the list in the response; defaults to the last
                path segment.
            extra_params: Extra parameters appended after the query.

        Returns:
            Parsed objects in server order.
        """
        params = query.to_params()
        if fields:
            params.append(("fields", fields))
        params.extend(extra_params)
        data = self._get_json(path, params)
        list_key = key or path.rsplit("/", 1)[-1]
        if not isinstance(data, dict) or not isinstance(data.get(list_key), list):
            raise DecodeError(f"Response from {path} has no '{list_key}' list")
        return [self._validate(model, item) for item in data[list_key]]

    def save_object(
        self,
        path: str,
        obj: Any,
        model: type[R] = Response,  # type: ignore[assignment]
        params: Sequence[tuple[str, str]] = (),
    ) -> R:
        return self._write("POST", path, obj, model, params)

    def update_object(
        self,
        path: str,
        obj: Any,
        model: type[R] = Response,  # type: ignore[assignment]
        params: Sequence[tuple[str, str]] = (),
    ) -> R:
        return self._write("PUT", path, obj, model, params)

    def remove_object(self, path: str, model: type[R] = Response) -> R:  # type: ignore[assignment]
        return self._write("DELETE", path, None, model)

    # -----------------------------------------------------------------------
    # Metadata
    # -----------------------------------------------------------------------

    def resource(self, name: str) -> ResourceAccessor:
        """Return the accessor for a resource in ``RESOURCES`` (e.g. "org_units")."""
        try:
            descriptor = RESOURCES[name]
        except KeyError:
            raise KeyError(f"Unknown resource '{name}'; known: {sorted(RESOURCES)}") from None
        return ResourceAccessor(self, descriptor)

    def save_metadata_object(self, path: str, obj: Any) -> ObjectResponse:
        return self.save_object(path, obj, ObjectResponse)

    def save_metadata_objects(self, path: str, objects: Sequence[Any]) -> ObjectsResponse:
        """Save several objects of one type through ``/api/metadata``."""
        payload = {path: [_payload(o) for o in objects]}
        return self.save_object("metadata", payload, ObjectsResponse)

    def update_metadata_object(self, path: str, uid: str, obj: Any) -> ObjectResponse:
        return self.update_object(f"{path}/{uid}", obj, ObjectResponse)

    def remove_metadata_object(self, path: str, uid: str) -> ObjectResponse:
        return self.remove_object(f"{path}/{uid}", ObjectResponse)

    def import_metadata(
        self,
        payload: dict[str, Any],
        params: Sequence[tuple[str, str]] = (),
        **runner_options: Any,
    ) -> ImportReport:
        """Import a metadata payload as an asynchronous job.

        Args:
            payload: Metadata keyed by collection (e.g. ``{"dataElements": [...]}``).
            params: Import parameters such as ``("importStrategy", "CREATE_AND_UPDATE")``.
            **runner_options: Passed to ``AsyncJobRunner``.

        Returns:
            The import report.
        """
        outcome = self.job_runner(**runner_options).run("metadata", _encode(payload), params)
        return self._validate(ImportReport, _unwrap_import_summary(outcome.unwrap()))

    # -----------------------------------------------------------------------
    # Org units
    # -----------------------------------------------------------------------

    def get_org_unit_sub_hierarchy(self, uid: str, level: int | None = None, query: Query | None = None) -> list[OrgUnit]:
        """Fetch an org unit and its descendants down to a relative *level*."""
        extra = [("level", str(level))] if level is not None else []
        return self.get_objects(
            f"organisationUnits/{uid}",
            query or Query(),
            OrgUnit,
            fields=ORG_UNIT_FIELDS,
            key="organisationUnits",
            extra_params=extra,
        )

    def get_filled_org_unit_levels(self) -> list[OrgUnitLevel]:
        """Fetch org unit levels, including unnamed levels filled with defaults."""
        data = self._get_json("filledOrganisationUnitLevels")
        if not isinstance(data, list):
            raise DecodeError("Expected a list of org unit levels")
        return [self._validate(OrgUnitLevel, item) for item in data]

    def split_org_unit(self, request: OrgUnitSplitRequest) -> Response:
        return self.save_object("organisationUnits/split", request)

    def merge_org_units(self, request: OrgUnitMergeRequest) -> Response:
        return self.save_object("organisationUnits/merge", request)

    # -----------------------------------------------------------------------
    # Data store
    # -----------------------------------------------------------------------

    @staticmethod
    def _data_store_path(namespace: str, key: str) -> str:
        return f"dataStore/{namespace}/{key}"

    def save_data_store_entry(self, namespace: str, key: str, obj: Any) -> Response:
        return self.save_object(self._data_store_path(namespace, key), obj)

    def update_data_store_entry(self, namespace: str, key: str, obj: Any) -> Response:
        return self.update_object(self._data_store_path(namespace, key), obj)

    def get_data_store_namespaces(self) -> list[str]:
        data = self._get_json("dataStore")
        if not isinstance(data, list):
            raise DecodeError("Expected a list of namespaces")
        return [str(ns) for ns in data]

    def get_data_store_keys(self, namespace: str) -> list[str]:
        data = self._get_json(f"dataStore/{namespace}")
        if not isinstance(data, list):
            raise DecodeError(f"Expected a list of keys for namespace '{namespace}'")
        return [str(key) for key in data]

    def get_data_store_entry(self, namespace: str, key: str, model: type[T] | None = None) -> Any:
        """Fetch a data store entry, parsed into *model* when given."""
        data = self._get_json(self._data_store_path(namespace, key))
        return self._validate(model, data) if model is not None else data

    def get_data_store_entry_metadata(self, namespace: str, key: str) -> EntryMetadata:
        return self._validate(EntryMetadata, self._get_json(f"dataStore/{namespace}/{key}/metaData"))

    def remove_data_store_entry(self, namespace: str, key: str) -> Response:
        return self.remove_object(self._data_store_path(namespace, key))

    def remove_data_store_namespace(self, namespace: str) -> Response:
        return self.remove_object(f"dataStore/{namespace}")

    # -----------------------------------------------------------------------
    # Data value sets
    # -----------------------------------------------------------------------

    def save_data_value_set(
        self,
        data_value_set: DataValueSet | str | Path,
        options: DataValueSetImportOptions | None = None,
        **runner_options: Any,
    ) -> DataValueSetResponse:
        """Import a data value set and wait for the import job.

        Args:
            data_value_set: The data value set, or a path to a JSON file
                holding one.
            options: Import options (id schemes, strategy, dry run ...).
            **runner_options: Passed to ``AsyncJobRunner`` (``interval``,
                ``timeout``, ``cancel`` ...).

        Returns:
            The import summary.

        Raises:
            Dhis2ClientError: The submission or the job failed, or polling
                timed out (``JobTimeoutError``).
        """
        if isinstance(data_value_set, DataValueSet):
            content = _encode(data_value_set)
        else:
            content = Path(data_value_set).read_bytes()
        params = options.to_params() if options else []

        outcome = self.job_runner(**runner_options).run("dataValueSets", content, params)
        summary = self._validate(DataValueSetResponse, _unwrap_import_summary(outcome.unwrap()))
        logger.info(
            "Data value import %s: imported=%d updated=%d ignored=%d",
            summary.status,
            summary.import_count.imported,
            summary.import_count.updated,
            summary.import_count.ignored,
        )
        return summary

    # -----------------------------------------------------------------------
    # Analytics
    # -----------------------------------------------------------------------

    def get_analytics(self, query: AnalyticsQuery) -> dict[str, Any]:
        """Fetch raw analytics data (``headers``, ``rows``, ``metaData``)."""
        data = self._get_json("analytics", query.to_params())
        if not isinstance(data, dict):
            raise DecodeError("Expected an analytics response object")
        return data

    def get_analytics_data_value_set(self, query: AnalyticsQuery) -> DataValueSet:
        return self._validate(DataValueSet, self._get_json("analytics/dataValueSet.json", query.to_params()))

    def write_analytics_data_value_set(self, query: AnalyticsQuery, path: str | Path) -> Path:
        """Stream an analytics data value set to *path*."""
        target = Path(path)
        try:
            with self._http.stream("GET", "analytics/dataValueSet.json", params=query.to_params()) as resp:
                if not resp.is_success:
                    resp.read()
                    raise error_for_response(resp)
                with target.open("wb") as fh:
                    for chunk in resp.iter_bytes():
                        fh.write(chunk)
        except httpx.TransportError as exc:
            raise TransportError(f"GET analytics/dataValueSet.json failed: {exc}") from exc
        return target

    # -----------------------------------------------------------------------
    # Tracker events
    # -----------------------------------------------------------------------

    def save_events(self, events: Events) -> EventResponse:
        """Create or update events synchronously."""
        return self.save_object(
            "tracker",
            events,
            EventResponse,
            params=[("async", "false"), ("importStrategy", "CREATE_AND_UPDATE")],
        )

    def get_event(self, uid: str) -> Event:
        return self._validate(Event, self._get_json(f"tracker/events/{uid}"))

    def remove_event(self, event: Event) -> EventResponse:
        if not event.id:
            raise ValueError("Event identifier must be specified")
        return self.save_object(
            "tracker",
            Events(events=[event]),
            EventResponse,
            params=[("async", "false"), ("importStrategy", "DELETE")],
        )

    # -----------------------------------------------------------------------
    # Jobs
    # -----------------------------------------------------------------------

    def job_runner(
        self,
        interval: float | None = None,
        timeout: float | None = None,
        cancel: threading.Event | None = None,
        **kwargs: Any,
    ) -> AsyncJobRunner:
        return AsyncJobRunner(self, interval=interval, timeout=timeout, cancel=cancel, **kwargs)

    def get_job_notifications(self, category: JobCategory | str, uid: str) -> list[JobNotification]:
        reference = JobReference(category=category, id=uid)
        data = self._get_json(reference.tasks_path)
        if not isinstance(data, list):
            raise DecodeError("Expected a list of job notifications")
        return [self._validate(JobNotification, item) for item in data]

    def get_job_summary(self, reference: JobReference) -> Any:
        """Fetch the summary of a finished job."""
        return self._get_json(reference.summary_path)
