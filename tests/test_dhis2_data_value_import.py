"""Tests for the dhis2_data_value_import flow."""

from collections.abc import Callable
from types import ModuleType
from unittest.mock import MagicMock, patch

from dhis2_api import Dhis2, Dhis2Credentials
from dhis2_api.models import DataValueSet, DataValueSetResponse, ImportConflict, ImportCount, OrgUnit


def _mock_client() -> MagicMock:
    client = MagicMock(spec=Dhis2)
    client.resource.return_value.list.return_value = [
        OrgUnit(id="DiszpKrYNg8", code="OU_559"),
        OrgUnit(id="g8upMTyEZGZ", code="OU_167609"),
    ]
    client.save_data_value_set.return_value = DataValueSetResponse(
        status="SUCCESS", import_count=ImportCount(imported=2)
    )
    client.get_dhis2_url.return_value = "https://dhis2.test"
    return client


def test_build_data_value_set_skips_unknown_codes(flow_module: Callable[[str], ModuleType]) -> None:
    mod = flow_module("dhis2_data_value_import")
    request = mod.ImportRequest(data_element="de1", period="2024", values={"A": "1", "B": "2", "C": "3"})

    dvs = mod.build_data_value_set.fn(request, {"A": "uidA", "C": "uidC"})

    assert isinstance(dvs, DataValueSet)
    assert [(v.org_unit, v.value) for v in dvs.data_values] == [("uidA", "1"), ("uidC", "3")]
    assert all(v.data_element == "de1" and v.period == "2024" for v in dvs.data_values)


def test_build_report_lists_conflicts(flow_module: Callable[[str], ModuleType]) -> None:
    mod = flow_module("dhis2_data_value_import")
    summary = DataValueSetResponse(
        status="WARNING",
        import_count=ImportCount(imported=1, ignored=1),
        conflicts=[ImportConflict(object="ou9", value="Org unit not found")],
    )

    report = mod.build_report.fn("https://dhis2.test", summary)

    assert report.status == "WARNING"
    assert report.ignored == 1
    assert report.conflicts == 1
    assert "| 1 | 0 | 1 | 1 |" in report.markdown
    assert "- `ou9`: Org unit not found" in report.markdown


def test_flow_runs(flow_module: Callable[[str], ModuleType]) -> None:
    mod = flow_module("dhis2_data_value_import")
    client = _mock_client()
    creds = MagicMock(spec=Dhis2Credentials, base_url="https://dhis2.test")
    creds.get_client.return_value = client
    request = mod.ImportRequest(data_element="fbfJHSPpUQD", period="202401", values={"OU_559": "12", "OU_167609": "7"})

    with patch.object(mod, "get_dhis2_credentials", return_value=creds):
        state = mod.dhis2_data_value_import_flow(request=request, return_state=True)

    assert state.is_completed()
    report = state.result()
    assert report.status == "SUCCESS"
    assert report.imported == 2
    client.resource.assert_called_with("org_units")
    (dvs, options), _ = client.save_data_value_set.call_args
    assert len(dvs.data_values) == 2
    assert options.dry_run is True
    assert options.import_strategy == "CREATE_AND_UPDATE"
