"""BigQuery connector: dataset/table lifecycle, streaming inserts and bulk jobs."""

import base64
import concurrent.futures
import dataclasses
import json
import os
import threading
import time
from datetime import date, datetime
from datetime import time as dt_time
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Sequence

from google.api_core import exceptions as api_exceptions
from google.cloud import bigquery
from google.oauth2 import service_account
import google.auth.exceptions

from .base import (
    AlreadyExistsError,
    AuthenticationError,
    InsertError,
    InsertErrorEntry,
    JobError,
    JobResult,
    NotFoundError,
    TableSchema,
    WarehouseError,
)
from ..utils.logging import get_logger, log_execution_time


BIGQUERY_SCOPE = "https://www.googleapis.com/auth/bigquery"
DEFAULT_KEY_FILE_NAME = "keyfile.json"
GCS_URI_PREFIX = "gs://"


class BigQueryConnector:
    """Thin synchronous wrapper around a ``bigquery.Client``.

    The connector keeps a registry of dataset references opened through
    :meth:`add_dataset`. Table operations look the dataset up by id; an id that
    was never registered is resolved against the client's project and left for
    BigQuery to reject if it does not exist.
    """

    def __init__(self, client: bigquery.Client, job_timeout: Optional[float] = None):
        """Initialize the connector.

        Args:
            client: Authenticated BigQuery client
            job_timeout: Seconds to wait on a job before giving up (None = forever)
        """
        self.client = client
        self.job_timeout = job_timeout
        self.logger = get_logger(self.__class__.__name__)

        self._datasets: Dict[str, bigquery.DatasetReference] = {}
        self._lock = threading.Lock()

        self.logger.info("BigQuery connector initialized", project_id=client.project)

    @classmethod
    def from_credentials(
        cls,
        credentials_path: str,
        project_id: str,
        key_file_name: str = DEFAULT_KEY_FILE_NAME,
        location: Optional[str] = None,
        job_timeout: Optional[float] = None,
    ) -> "BigQueryConnector":
        """Build a connector from a directory holding a service account key.

        Args:
            credentials_path: Directory containing the key file
            project_id: Project the client runs jobs in
            key_file_name: Name of the key file inside credentials_path
            location: Default dataset/job location
            job_timeout: Seconds to wait on a job before giving up

        Raises:
            AuthenticationError: If the key is missing, unreadable or malformed
        """
        logger = get_logger(cls.__name__)

        if not credentials_path:
            logger.error("BigQuery credentials path is not set")
            raise AuthenticationError("Missing BigQuery credentials path")

        key_path = os.path.join(credentials_path, key_file_name)

        try:
            credentials = service_account.Credentials.from_service_account_file(
                key_path,
                scopes=[BIGQUERY_SCOPE]
            )
        except FileNotFoundError as e:
            error_msg = f"Credentials file not found: {key_path}"
            logger.error("BigQuery authentication failed", error=error_msg)
            raise AuthenticationError(error_msg) from e
        except json.JSONDecodeError as e:
            error_msg = f"Invalid credentials file format: {e}"
            logger.error("BigQuery authentication failed", error=error_msg)
            raise AuthenticationError(error_msg) from e
        except (ValueError, KeyError, OSError, google.auth.exceptions.GoogleAuthError) as e:
            error_msg = f"Invalid credentials: {e}"
            logger.error("BigQuery authentication failed", error=error_msg)
            raise AuthenticationError(error_msg) from e

        client = bigquery.Client(
            project=project_id or credentials.project_id,
            credentials=credentials,
            location=location
        )
        return cls(client, job_timeout=job_timeout)

    # Datasets

    def add_dataset(
        self,
        dataset_id: str,
        exists_ok: bool = True,
        project_id: Optional[str] = None,
    ) -> bigquery.DatasetReference:
        """Create a dataset and register its handle.

        Args:
            dataset_id: Dataset to create
            exists_ok: Tolerate a dataset that already exists
            project_id: Project to create it in (defaults to the client's)

        Returns:
            Reference to the registered dataset

        Raises:
            AlreadyExistsError: If the dataset exists and exists_ok is False
            WarehouseError: For any other remote failure
        """
        dataset_ref = bigquery.DatasetReference(project_id or self.client.project, dataset_id)
        with self._lock:
            self._datasets[dataset_id] = dataset_ref

        dataset = bigquery.Dataset(dataset_ref)
        if self.client.location:
            dataset.location = self.client.location

        try:
            self.client.create_dataset(dataset)
        except api_exceptions.Conflict as e:
            if not exists_ok:
                raise AlreadyExistsError(f"Dataset already exists: {dataset_id}") from e
            self.logger.warning("Failed to create dataset", dataset_id=dataset_id, error=str(e))
        except api_exceptions.GoogleAPICallError as e:
            raise WarehouseError(f"Failed to create dataset {dataset_id}: {e}") from e
        else:
            self.logger.info("Dataset created", dataset_id=dataset_id)

        return dataset_ref

    def list_datasets(self) -> List[str]:
        """List the ids of every dataset visible to the project."""
        try:
            result = [item.dataset_id for item in self.client.list_datasets()]
        except api_exceptions.GoogleAPICallError as e:
            raise WarehouseError(f"Failed to list datasets: {e}") from e

        self.logger.info("Listed datasets", count=len(result))
        return result

    # Tables

    def create_table_if_not_exists(
        self,
        dataset_id: str,
        table_id: str,
        schema: TableSchema,
        expiration_seconds: int = 0,
    ) -> bool:
        """Create a day-partitioned table unless it already exists.

        Args:
            dataset_id: Dataset holding the table
            table_id: Table to create
            schema: Explicit column list
            expiration_seconds: Partition lifetime; 0 keeps partitions forever

        Returns:
            True if the table was created, False if it already existed
        """
        if expiration_seconds < 0:
            raise ValueError("expiration_seconds must not be negative")

        table = bigquery.Table(self._table_ref(dataset_id, table_id), schema=schema.to_bigquery())
        table.time_partitioning = bigquery.TimePartitioning(
            type_=bigquery.TimePartitioningType.DAY,
            expiration_ms=expiration_seconds * 1000 if expiration_seconds else None
        )

        try:
            self.client.create_table(table)
        except api_exceptions.Conflict as e:
            self.logger.warning(
                "Failed to create table",
                dataset_id=dataset_id,
                table_id=table_id,
                error=str(e)
            )
            return False
        except api_exceptions.GoogleAPICallError as e:
            raise WarehouseError(f"Failed to create table {dataset_id}.{table_id}: {e}") from e

        self.logger.info(
            "Table created",
            dataset_id=dataset_id,
            table_id=table_id,
            fields=schema.field_names
        )
        return True

    def list_tables(self, dataset_id: str, project_id: Optional[str] = None) -> List[str]:
        """List the ids of every table in a dataset."""
        try:
            result = [
                item.table_id
                for item in self.client.list_tables(self._dataset_ref(dataset_id, project_id))
            ]
        except api_exceptions.NotFound as e:
            raise NotFoundError(f"Dataset not found: {dataset_id}") from e
        except api_exceptions.GoogleAPICallError as e:
            raise WarehouseError(f"Failed to list tables in {dataset_id}: {e}") from e

        self.logger.info("Listed tables", dataset_id=dataset_id, tables=result)
        return result

    def browse_table(self, dataset_id: str, table_id: str) -> int:
        """Read every row of a table and return how many there were."""
        amount = 0
        try:
            for row in self.client.list_rows(self._table_ref(dataset_id, table_id)):
                amount += 1
                self.logger.debug("Row", dataset_id=dataset_id, table_id=table_id, row=dict(row.items()))
        except api_exceptions.NotFound as e:
            raise NotFoundError(f"Table not found: {dataset_id}.{table_id}") from e
        except api_exceptions.GoogleAPICallError as e:
            raise WarehouseError(f"Failed to read {dataset_id}.{table_id}: {e}") from e

        self.logger.info("Browsed table", dataset_id=dataset_id, table_id=table_id, rows=amount)
        return amount

    @log_execution_time
    def copy_table(self, dataset_id: str, src_id: str, dst_id: str) -> JobResult:
        """Copy a table over another in the same dataset, truncating the target."""
        job_config = bigquery.CopyJobConfig(
            write_disposition=bigquery.WriteDisposition.WRITE_TRUNCATE
        )
        return self._run_job(
            "copy",
            lambda: self.client.copy_table(
                self._table_ref(dataset_id, src_id),
                self._table_ref(dataset_id, dst_id),
                job_config=job_config
            )
        )

    def delete_table(self, dataset_id: str, table_id: str) -> None:
        """Delete a table.

        Raises:
            NotFoundError: If the table does not exist
            WarehouseError: For any other remote failure
        """
        try:
            self.client.delete_table(self._table_ref(dataset_id, table_id))
        except api_exceptions.NotFound as e:
            raise NotFoundError(f"Table not found: {dataset_id}.{table_id}") from e
        except api_exceptions.GoogleAPICallError as e:
            raise WarehouseError(f"Failed to delete {dataset_id}.{table_id}: {e}") from e

        self.logger.info("Table deleted", dataset_id=dataset_id, table_id=table_id)

    # Data movement

    def save_events(
        self,
        dataset_id: str,
        table_id: str,
        rows: Sequence[Any],
        raise_on_error: bool = False,
    ) -> List[InsertErrorEntry]:
        """Stream a batch of rows into a table.

        Args:
            dataset_id: Dataset holding the table
            table_id: Target table
            rows: Mappings or dataclass instances, inserted in order
            raise_on_error: Raise InsertError instead of returning the errors

        Returns:
            Per-row errors; empty when every row was accepted
        """
        if not rows:
            return []

        payload = [_to_json_row(row) for row in rows]

        try:
            raw_errors = self.client.insert_rows_json(self._table_ref(dataset_id, table_id), payload)
        except api_exceptions.GoogleAPICallError as e:
            raw_errors = [{"index": None, "errors": [{"reason": "request_failed", "message": str(e)}]}]

        errors = [
            InsertErrorEntry(index=entry.get("index"), errors=list(entry.get("errors", [])))
            for entry in raw_errors
        ]

        if errors:
            self.logger.error(
                "Failed to insert rows",
                dataset_id=dataset_id,
                table_id=table_id,
                failed_rows=len(errors),
                errors=[e.errors for e in errors]
            )
            if raise_on_error:
                raise InsertError(
                    f"{len(errors)} of {len(payload)} rows rejected by {dataset_id}.{table_id}",
                    errors
                )
        else:
            self.logger.info("Rows inserted", dataset_id=dataset_id, table_id=table_id, rows=len(payload))

        return errors

    @log_execution_time
    def import_from_file(
        self,
        dataset_id: str,
        table_id: str,
        filename: str,
        source_format: str = bigquery.SourceFormat.CSV,
    ) -> JobResult:
        """Load a local file into an existing table."""
        job_config = self._load_job_config(source_format)
        table_ref = self._table_ref(dataset_id, table_id)

        with open(filename, "rb") as source:
            return self._run_job(
                "load",
                lambda: self.client.load_table_from_file(source, table_ref, job_config=job_config)
            )

    @log_execution_time
    def import_from_gcs(
        self,
        dataset_id: str,
        table_id: str,
        gcs_uri: str,
        source_format: str = bigquery.SourceFormat.CSV,
    ) -> JobResult:
        """Load a Cloud Storage object (e.g. gs://bucket/path/data.csv) into an existing table."""
        _check_gcs_uri(gcs_uri)
        job_config = self._load_job_config(source_format)
        return self._run_job(
            "load",
            lambda: self.client.load_table_from_uri(
                gcs_uri,
                self._table_ref(dataset_id, table_id),
                job_config=job_config
            )
        )

    @log_execution_time
    def export_to_gcs(self, dataset_id: str, table_id: str, gcs_uri: str) -> JobResult:
        """Extract a table to Cloud Storage as comma-delimited CSV without a header."""
        _check_gcs_uri(gcs_uri)
        job_config = bigquery.ExtractJobConfig(
            destination_format=bigquery.DestinationFormat.CSV,
            field_delimiter=",",
            print_header=False
        )
        return self._run_job(
            "extract",
            lambda: self.client.extract_table(
                self._table_ref(dataset_id, table_id),
                gcs_uri,
                job_config=job_config
            )
        )

    # Internals

    def _dataset_ref(self, dataset_id: str, project_id: Optional[str] = None) -> bigquery.DatasetReference:
        if project_id:
            return bigquery.DatasetReference(project_id, dataset_id)
        with self._lock:
            dataset_ref = self._datasets.get(dataset_id)
        if dataset_ref is None:
            dataset_ref = bigquery.DatasetReference(self.client.project, dataset_id)
        return dataset_ref

    def _table_ref(self, dataset_id: str, table_id: str) -> bigquery.TableReference:
        return self._dataset_ref(dataset_id).table(table_id)

    @staticmethod
    def _load_job_config(source_format: str) -> bigquery.LoadJobConfig:
        source_format = source_format.upper()
        job_config = bigquery.LoadJobConfig(
            source_format=source_format,
            create_disposition=bigquery.CreateDisposition.CREATE_NEVER
        )
        # Jagged rows are a CSV-only option.
        if source_format == bigquery.SourceFormat.CSV:
            job_config.allow_jagged_rows = True
        return job_config

    def _run_job(self, kind: str, submit) -> JobResult:
        """Submit a job, block until it is done and surface its first error."""
        start_time = time.time()

        try:
            job = submit()
        except api_exceptions.NotFound as e:
            raise NotFoundError(f"Failed to submit {kind} job: {e}") from e
        except api_exceptions.GoogleAPICallError as e:
            raise WarehouseError(f"Failed to submit {kind} job: {e}") from e

        self.logger.info("Job submitted", job_type=kind, job_id=job.job_id)

        try:
            job.result(timeout=self.job_timeout)
        except concurrent.futures.TimeoutError as e:
            raise JobError(
                f"Timed out after {self.job_timeout}s waiting for {kind} job {job.job_id}",
                job_id=job.job_id
            ) from e
        except api_exceptions.GoogleAPICallError as e:
            raise JobError(
                f"{kind.capitalize()} job {job.job_id} failed: {e}",
                job_id=job.job_id,
                errors=list(getattr(job, "errors", None) or [])
            ) from e

        if job.error_result:
            raise JobError(
                f"{kind.capitalize()} job {job.job_id} failed: {job.error_result.get('message')}",
                job_id=job.job_id,
                errors=list(job.errors or [job.error_result])
            )

        result = JobResult(
            job_id=job.job_id,
            job_type=kind,
            state=job.state,
            output_rows=getattr(job, "output_rows", None),
            duration=time.time() - start_time
        )
        self.logger.info("Job completed", job_type=kind, job_id=job.job_id, output_rows=result.output_rows)
        return result


def _check_gcs_uri(uri: str) -> None:
    if not uri.lower().startswith(GCS_URI_PREFIX):
        raise ValueError(f"Cloud Storage URI must start with '{GCS_URI_PREFIX}', got '{uri}'")


def _to_json_row(row: Any) -> Dict[str, Any]:
    if dataclasses.is_dataclass(row) and not isinstance(row, type):
        row = dataclasses.asdict(row)
    if not isinstance(row, Mapping):
        raise TypeError(f"Rows must be mappings or dataclass instances, got {type(row).__name__}")
    return {str(key): _to_json_value(value) for key, value in row.items()}


def _to_json_value(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {str(k): _to_json_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_json_value(v) for v in value]
    if isinstance(value, (datetime, date, dt_time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, bytes):
        return base64.b64encode(value).decode("ascii")
    return value
