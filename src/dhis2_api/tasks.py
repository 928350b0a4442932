"""Reusable Prefect tasks for DHIS2.

Import these tasks into any flow that talks to DHIS2.
"""

from __future__ import annotations

from prefect import get_run_logger, task

from dhis2_api.client import Dhis2
from dhis2_api.jobs import JobCategory, JobNotification
from dhis2_api.models import DataValueSet, DataValueSetImportOptions, DataValueSetResponse, Dhis2Model
from dhis2_api.query import Query


@task
def fetch_objects(client: Dhis2, resource: str, query: Query | None = None) -> list[Dhis2Model]:
    """Fetch objects of a registered resource (e.g. "data_elements").

    Args:
        client: Authenticated DHIS2 client.
        resource: Resource name from ``RESOURCES``.
        query: Optional filters, paging and order.

    Returns:
        Parsed objects.
    """
    logger = get_run_logger()
    objects = client.resource(resource).list(query)
    logger.info("Fetched %d %s", len(objects), resource)
    return objects


@task(retries=2, retry_delay_seconds=[2, 5])
def import_data_value_set(
    client: Dhis2,
    data_value_set: DataValueSet,
    options: DataValueSetImportOptions | None = None,
    poll_timeout: float | None = None,
) -> DataValueSetResponse:
    """Import a data value set, waiting for the async job to finish.

    Args:
        client: Authenticated DHIS2 client.
        data_value_set: Values to import.
        options: Import options.
        poll_timeout: Override for the maximum polling time in seconds.

    Returns:
        The import summary.
    """
    logger = get_run_logger()
    logger.info("Importing %d data values", len(data_value_set.data_values))
    summary = client.save_data_value_set(data_value_set, options, timeout=poll_timeout)
    logger.info(
        "Import %s: imported=%d, updated=%d, ignored=%d, conflicts=%d",
        summary.status,
        summary.import_count.imported,
        summary.import_count.updated,
        summary.import_count.ignored,
        len(summary.conflicts),
    )
    return summary


@task
def fetch_job_notifications(client: Dhis2, category: JobCategory | str, job_id: str) -> list[JobNotification]:
    """Fetch the current notifications of a job."""
    notifications = client.get_job_notifications(category, job_id)
    get_run_logger().info("Job %s has %d notifications", job_id, len(notifications))
    return notifications
