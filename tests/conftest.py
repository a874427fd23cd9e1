"""Shared fixtures: in-memory stand-ins for the BigQuery client and its jobs."""

import os
import sys
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from google.api_core import exceptions as api_exceptions

from warehouse_connector.warehouse import BigQueryConnector, reset_connector


PROJECT_ID = "pjgg-157508"


def make_job(job_id="job_1", state="DONE", output_rows=None, error=None, error_result=None):
    """Create a mock copy/load/extract job."""
    job = MagicMock()
    job.job_id = job_id
    job.state = state
    job.output_rows = output_rows
    job.error_result = error_result
    job.errors = [error_result] if error_result else None
    if error is not None:
        job.result.side_effect = error
    return job


@pytest.fixture
def mock_client():
    """Mock client that remembers the datasets and tables created through it."""
    client = MagicMock()
    client.project = PROJECT_ID
    client.location = None

    datasets = []
    tables = {}

    def create_dataset(dataset, *args, **kwargs):
        if dataset.dataset_id in datasets:
            raise api_exceptions.Conflict(f"Already Exists: Dataset {PROJECT_ID}:{dataset.dataset_id}")
        datasets.append(dataset.dataset_id)
        tables.setdefault(dataset.dataset_id, [])
        return dataset

    def create_table(table, *args, **kwargs):
        existing = tables.setdefault(table.dataset_id, [])
        if table.table_id in existing:
            raise api_exceptions.Conflict(f"Already Exists: Table {table.dataset_id}.{table.table_id}")
        existing.append(table.table_id)
        return table

    def list_datasets(*args, **kwargs):
        return iter([SimpleNamespace(dataset_id=d) for d in datasets])

    def list_tables(dataset_ref, *args, **kwargs):
        if dataset_ref.dataset_id not in tables:
            raise api_exceptions.NotFound(f"Not found: Dataset {PROJECT_ID}:{dataset_ref.dataset_id}")
        return iter([SimpleNamespace(table_id=t) for t in tables[dataset_ref.dataset_id]])

    client.create_dataset.side_effect = create_dataset
    client.create_table.side_effect = create_table
    client.list_datasets.side_effect = list_datasets
    client.list_tables.side_effect = list_tables
    client.insert_rows_json.return_value = []
    return client


@pytest.fixture
def connector(mock_client):
    return BigQueryConnector(mock_client)


@pytest.fixture(autouse=True)
def clean_global_connector():
    reset_connector()
    yield
    reset_connector()
