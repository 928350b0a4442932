"""DHIS2 Data Value Import.

Build a data value set, import it as an asynchronous DHIS2 job, wait for the
job to finish, and publish the import summary as a markdown artifact.

Airflow equivalent: PythonOperator POST + HttpSensor on the task endpoint.
Prefect approach:    one retrying task wrapping AsyncJobRunner (submit, poll,
                     return the summary), markdown artifact for the result.
"""

from __future__ import annotations

from dotenv import load_dotenv
from prefect import flow, task
from prefect.artifacts import create_markdown_artifact
from pydantic import BaseModel, Field

from dhis2_api import Dhis2, Filter, Query, get_dhis2_credentials
from dhis2_api.models import DataValue, DataValueSet, DataValueSetImportOptions, DataValueSetResponse
from dhis2_api.tasks import fetch_objects, import_data_value_set
from dhis2_api.utils import timestamp

# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class ImportRequest(BaseModel):
    """Values to import for one data element and period."""

    data_element: str = Field(description="Data element UID")
    period: str = Field(description="ISO period, e.g. 2024 or 202401")
    values: dict[str, str] = Field(description="Org unit code -> value")
    dry_run: bool = Field(default=True, description="Validate without persisting")


class ImportReport(BaseModel):
    """Summary of a finished import."""

    dhis2_url: str
    status: str = ""
    imported: int = 0
    updated: int = 0
    ignored: int = 0
    conflicts: int = 0
    markdown: str = ""


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------


@task
def build_data_value_set(request: ImportRequest, org_unit_ids: dict[str, str]) -> DataValueSet:
    """Turn an ImportRequest into a DataValueSet, skipping unknown org units.

    Args:
        request: The import request keyed by org unit code.
        org_unit_ids: Org unit code -> UID.

    Returns:
        DataValueSet ready for import.
    """
    values = [
        DataValue(
            data_element=request.data_element,
            period=request.period,
            org_unit=org_unit_ids[code],
            value=value,
        )
        for code, value in sorted(request.values.items())
        if code in org_unit_ids
    ]
    skipped = sorted(set(request.values) - set(org_unit_ids))
    if skipped:
        print(f"WARNING: no org unit for codes {skipped}")
    print(f"Built data value set with {len(values)} values")
    return DataValueSet(data_values=values)


@task
def build_report(dhis2_url: str, summary: DataValueSetResponse) -> ImportReport:
    """Render the import summary as markdown."""
    counts = summary.import_count
    lines = [
        "## DHIS2 Data Value Import",
        "",
        f"**DHIS2 target:** {dhis2_url}",
        f"**Finished:** {timestamp()}",
        f"**Status:** {summary.status}",
        "",
        "| Imported | Updated | Ignored | Conflicts |",
        "|----------|---------|---------|-----------|",
        f"| {counts.imported} | {counts.updated} | {counts.ignored} | {len(summary.conflicts)} |",
    ]
    if summary.conflicts:
        lines.append("")
        lines.append("### Conflicts")
        lines.append("")
        for conflict in summary.conflicts:
            lines.append(f"- `{conflict.object}`: {conflict.value}")

    return ImportReport(
        dhis2_url=dhis2_url,
        status=summary.status or "",
        imported=counts.imported,
        updated=counts.updated,
        ignored=counts.ignored,
        conflicts=len(summary.conflicts),
        markdown="\n".join(lines),
    )


# ---------------------------------------------------------------------------
# Flow
# ---------------------------------------------------------------------------


@flow(name="dhis2_data_value_import", log_prints=True)
def dhis2_data_value_import_flow(
    request: ImportRequest | None = None,
    client: Dhis2 | None = None,
) -> ImportReport:
    """Import data values into DHIS2 and report the result.

    Args:
        request: What to import. Uses a demo request if not provided.
        client: DHIS2 client. Built from the saved credentials block if
            not provided.

    Returns:
        ImportReport with markdown.
    """
    if request is None:
        request = ImportRequest(
            data_element="fbfJHSPpUQD",
            period="202401",
            values={"OU_559": "12", "OU_167609": "7"},
        )

    if client is None:
        creds = get_dhis2_credentials()
        print(f"DHIS2 target: {creds.base_url}")
        client = creds.get_client()

    query = Query().add(Filter.in_("code", sorted(request.values))).without_paging()
    org_units = fetch_objects(client, "org_units", query)
    org_unit_ids = {ou.code: ou.id for ou in org_units if ou.code and ou.id}  # type: ignore[attr-defined]

    data_value_set = build_data_value_set(request, org_unit_ids)
    options = DataValueSetImportOptions(dry_run=request.dry_run, import_strategy="CREATE_AND_UPDATE")
    summary = import_data_value_set(client, data_value_set, options)

    report = build_report(client.get_dhis2_url(), summary)
    create_markdown_artifact(key="dhis2-data-value-import", markdown=report.markdown)
    return report


if __name__ == "__main__":
    load_dotenv()
    dhis2_data_value_import_flow()
