"""Tests for the DHIS2 payload models."""

from datetime import datetime

import pytest
from pydantic import ValidationError

from dhis2_api.models import (
    DataElement,
    DataValue,
    DataValueSetImportOptions,
    DataValueSetResponse,
    Event,
    EventDataValue,
    IdentifiableObject,
    ObjectResponse,
    OrgUnit,
)


def test_to_json_uses_camel_case_and_drops_none() -> None:
    element = DataElement(
        name="ANC 1st visit",
        short_name="ANC 1",
        zero_is_significant=False,
        category_combo=IdentifiableObject(id="bjDvmb4bfuf"),
    )
    assert element.to_json() == {
        "name": "ANC 1st visit",
        "shortName": "ANC 1",
        "zeroIsSignificant": False,
        "categoryCombo": {"id": "bjDvmb4bfuf"},
    }


def test_unknown_fields_are_ignored() -> None:
    unit = OrgUnit.model_validate(
        {"id": "ImspTQPwCqd", "displayName": "Sierra Leone", "level": 1, "lastUpdated": "2024-01-01T00:00:00.000"}
    )
    assert unit.id == "ImspTQPwCqd"
    assert unit.level == 1
    assert unit.last_updated == datetime(2024, 1, 1)
    assert "displayName" not in unit.to_json()


def test_data_value_requires_coordinates() -> None:
    with pytest.raises(ValidationError):
        DataValue.model_validate({"dataElement": "de1", "value": "3"})


def test_import_options_to_params() -> None:
    options = DataValueSetImportOptions(org_unit_id_scheme="CODE", import_strategy="CREATE", dry_run=False, force=True)
    assert options.to_params() == [
        ("orgUnitIdScheme", "CODE"),
        ("importStrategy", "CREATE"),
        ("dryRun", "false"),
        ("force", "true"),
    ]


def test_import_summary_parses_conflicts() -> None:
    summary = DataValueSetResponse.model_validate(
        {
            "responseType": "ImportSummary",
            "status": "WARNING",
            "importCount": {"imported": 1, "updated": 0, "ignored": 1, "deleted": 0},
            "conflicts": [{"object": "ou9", "value": "Org unit not found", "errorCode": "E7610"}],
        }
    )
    assert summary.import_count.ignored == 1
    assert summary.conflicts[0].error_code == "E7610"


def test_object_response_uid() -> None:
    assert ObjectResponse.model_validate({"status": "OK", "response": {"uid": "abc"}}).uid == "abc"
    assert ObjectResponse(status="OK").uid is None


def test_event_identifier_uses_event_key() -> None:
    event = Event.model_validate(
        {"event": "evt1", "program": "p1", "dataValues": [{"dataElement": "de1", "value": "42"}]}
    )
    assert event.id == "evt1"
    assert event.status == "ACTIVE"
    assert event.data_values == [EventDataValue(data_element="de1", value="42")]
    payload = event.to_json()
    assert payload["event"] == "evt1"
    assert "id" not in payload


def test_import_summary_carries_only_server_fields() -> None:
    summary = DataValueSetResponse.model_validate({"status": "SUCCESS", "httpStatusCode": 200})
    assert "http_status_code" not in DataValueSetResponse.model_fields
    assert summary.to_json() == {
        "status": "SUCCESS",
        "importCount": {"imported": 0, "updated": 0, "ignored": 0, "deleted": 0},
        "conflicts": [],
    }
