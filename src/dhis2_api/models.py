"""DHIS2 request and response models.

All models read and write DHIS2's camelCase JSON.  Unknown response fields
are ignored and ``None`` fields are dropped when serializing, so payloads
only carry what the caller set.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Dhis2Model(BaseModel):
    """Base for all DHIS2 payloads."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_json(self) -> dict[str, Any]:
        """Serialize with DHIS2 field names, omitting unset values."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


# ---------------------------------------------------------------------------
# System
# ---------------------------------------------------------------------------


class SystemInfo(Dhis2Model):
    """Parsed /api/system/info response."""

    version: str | None = None
    revision: str | None = None
    build_time: str | None = None
    server_date: str | None = None
    context_path: str | None = None
    calendar: str | None = None
    date_format: str | None = None
    system_id: str | None = None
    system_name: str | None = None
    server_time_zone_id: str | None = None


# ---------------------------------------------------------------------------
# Web messages
# ---------------------------------------------------------------------------


class ErrorReport(Dhis2Model):
    message: str = ""
    error_code: str | None = None
    main_klass: str | None = None
    error_klass: str | None = None
    error_property: str | None = None


class ObjectStatistics(Dhis2Model):
    created: int = 0
    updated: int = 0
    deleted: int = 0
    ignored: int = 0
    total: int = 0


class ImportCount(Dhis2Model):
    """Import counts returned by data value imports."""

    imported: int = 0
    updated: int = 0
    ignored: int = 0
    deleted: int = 0


class Response(Dhis2Model):
    """Generic DHIS2 web message.

    ``http_status_code`` is overwritten with the status of the HTTP response
    the message arrived in.
    """

    http_status: str | None = None
    http_status_code: int | None = None
    status: str | None = None
    message: str | None = None
    dev_message: str | None = None

    @property
    def is_ok(self) -> bool:
        return self.status in ("OK", "SUCCESS")


class ObjectReport(Dhis2Model):
    uid: str | None = None
    klass: str | None = None
    error_reports: list[ErrorReport] = []


class ObjectResponse(Response):
    """Response to a single metadata object save, update or delete."""

    response: ObjectReport | None = None

    @property
    def uid(self) -> str | None:
        return self.response.uid if self.response else None


class ImportReport(Dhis2Model):
    response_type: str | None = None
    status: str | None = None
    stats: ObjectStatistics = Field(default_factory=ObjectStatistics)
    type_reports: list[dict[str, Any]] = []


class ObjectsResponse(Response):
    """Response to a bulk metadata import."""

    response: ImportReport | None = None

    @property
    def stats(self) -> ObjectStatistics:
        return self.response.stats if self.response else ObjectStatistics()


# ---------------------------------------------------------------------------
# Metadata objects
# ---------------------------------------------------------------------------


class IdentifiableObject(Dhis2Model):
    id: str | None = None
    code: str | None = None
    name: str | None = None
    created: datetime | None = None
    last_updated: datetime | None = None


class NameableObject(IdentifiableObject):
    short_name: str | None = None
    description: str | None = None


class OrgUnit(NameableObject):
    level: int | None = None
    path: str | None = None
    parent: IdentifiableObject | None = None
    opening_date: datetime | None = None
    closed_date: datetime | None = None
    geometry: dict[str, Any] | None = None


class OrgUnitGroup(NameableObject):
    organisation_units: list[IdentifiableObject] | None = None


class OrgUnitGroupSet(NameableObject):
    compulsory: bool | None = None
    organisation_unit_groups: list[IdentifiableObject] | None = None


class OrgUnitLevel(IdentifiableObject):
    level: int | None = None
    offline_levels: int | None = None


class LegendSet(IdentifiableObject):
    pass


class DataElement(NameableObject):
    aggregation_type: str | None = None
    value_type: str | None = None
    domain_type: str | None = None
    zero_is_significant: bool | None = None
    category_combo: IdentifiableObject | None = None
    legend_sets: list[LegendSet] | None = None


class DataElementGroup(NameableObject):
    data_elements: list[IdentifiableObject] | None = None


class DataElementGroupSet(NameableObject):
    data_element_groups: list[IdentifiableObject] | None = None


class CategoryOption(NameableObject):
    start_date: datetime | None = None
    end_date: datetime | None = None


class Category(NameableObject):
    data_dimension_type: str | None = None
    data_dimension: bool | None = None
    category_options: list[IdentifiableObject] | None = None


class CategoryCombo(IdentifiableObject):
    data_dimension_type: str | None = None
    skip_total: bool | None = None
    categories: list[IdentifiableObject] | None = None


class CategoryOptionGroupSet(NameableObject):
    data_dimension_type: str | None = None
    category_option_groups: list[IdentifiableObject] | None = None


class Program(NameableObject):
    program_type: str | None = None
    tracked_entity_type: IdentifiableObject | None = None
    category_combo: IdentifiableObject | None = None
    program_stages: list[IdentifiableObject] | None = None


class MetadataDimension(IdentifiableObject):
    """An analytical dimension listed by ``/api/dimensions``."""

    dimension_type: str | None = None
    data_dimension: bool | None = None


class PeriodType(Dhis2Model):
    name: str | None = None
    frequency_order: int | None = None
    iso_duration: str | None = None
    iso_format: str | None = None


class TableHook(IdentifiableObject):
    phase: str | None = None
    resource_table_type: str | None = None
    analytics_table_type: str | None = None
    sql: str | None = None


class OrgUnitSplitRequest(Dhis2Model):
    source: str
    targets: list[str]
    primary_target: str | None = None
    delete_source: bool | None = None


class OrgUnitMergeRequest(Dhis2Model):
    sources: list[str]
    target: str
    data_value_merge_strategy: str | None = None
    delete_sources: bool | None = None


# ---------------------------------------------------------------------------
# Data store
# ---------------------------------------------------------------------------


class UserMetadata(Dhis2Model):
    id: str | None = None
    code: str | None = None
    name: str | None = None
    display_name: str | None = None
    username: str | None = None


class EntryMetadata(Dhis2Model):
    """Metadata about a data store entry."""

    id: str | None = None
    namespace: str | None = None
    key: str | None = None
    created: datetime | None = None
    last_updated: datetime | None = None
    created_by: UserMetadata | None = None
    last_updated_by: UserMetadata | None = None


# ---------------------------------------------------------------------------
# Data value sets
# ---------------------------------------------------------------------------


class DataValue(Dhis2Model):
    data_element: str
    period: str
    org_unit: str
    category_option_combo: str | None = None
    attribute_option_combo: str | None = None
    value: str | None = None
    stored_by: str | None = None
    comment: str | None = None
    followup: bool | None = None
    deleted: bool | None = None


class DataValueSet(Dhis2Model):
    data_set: str | None = None
    complete_date: str | None = None
    period: str | None = None
    org_unit: str | None = None
    attribute_option_combo: str | None = None
    data_values: list[DataValue] = []


class DataValueSetImportOptions(Dhis2Model):
    """Query parameters controlling a data value set import."""

    data_element_id_scheme: str | None = None
    org_unit_id_scheme: str | None = None
    category_option_combo_id_scheme: str | None = None
    id_scheme: str | None = None
    import_strategy: str | None = None
    dry_run: bool | None = None
    preheat_cache: bool | None = None
    skip_audit: bool | None = None
    skip_existing_check: bool | None = None
    force: bool | None = None

    def to_params(self) -> list[tuple[str, str]]:
        params: list[tuple[str, str]] = []
        for key, value in self.to_json().items():
            if isinstance(value, bool):
                value = "true" if value else "false"
            params.append((key, str(value)))
        return params


class ImportConflict(Dhis2Model):
    object: str | None = None
    value: str | None = None
    error_code: str | None = None
    property: str | None = None


class DataValueSetResponse(Dhis2Model):
    """Import summary for a data value set import."""

    response_type: str | None = None
    status: str | None = None
    description: str | None = None
    import_count: ImportCount = Field(default_factory=ImportCount)
    conflicts: list[ImportConflict] = []
    data_set_complete: str | None = None


# ---------------------------------------------------------------------------
# Tracker events
# ---------------------------------------------------------------------------


class EventDataValue(Dhis2Model):
    data_element: str
    value: str | None = None
    provided_elsewhere: bool | None = None
    stored_by: str | None = None


class Event(Dhis2Model):
    id: str | None = Field(default=None, alias="event")
    program: str | None = None
    program_stage: str | None = None
    enrollment: str | None = None
    attribute_option_combo: str | None = None
    assigned_user: str | None = None
    status: str = "ACTIVE"
    org_unit: str | None = None
    created_at: datetime | None = None
    created_at_client: datetime | None = None
    updated_at: datetime | None = None
    updated_at_client: datetime | None = None
    scheduled_at: datetime | None = None
    occurred_at: datetime | None = None
    completed_by: str | None = None
    stored_by: str | None = None
    follow_up: bool | None = None
    deleted: bool | None = None
    data_values: list[EventDataValue] = []


class Events(Dhis2Model):
    events: list[Event] = []


class EventResponse(Dhis2Model):
    """Tracker import report for events."""

    status: str | None = None
    stats: ObjectStatistics = Field(default_factory=ObjectStatistics)
    validation_report: dict[str, Any] | None = None
    bundle_report: dict[str, Any] | None = None
    message: str | None = None
    http_status_code: int | None = None
