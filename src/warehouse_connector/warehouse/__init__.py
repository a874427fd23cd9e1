"""Warehouse package: the BigQuery connector and its shared types."""

from .base import (
    FieldType,
    FieldMode,
    FieldSpec,
    TableSchema,
    JobResult,
    InsertErrorEntry,
    WarehouseError,
    AuthenticationError,
    AlreadyExistsError,
    NotFoundError,
    JobError,
    InsertError
)

from .bigquery import BigQueryConnector
from .factory import create_connector, get_connector, reset_connector

__all__ = [
    # Schema and results
    "FieldType",
    "FieldMode",
    "FieldSpec",
    "TableSchema",
    "JobResult",
    "InsertErrorEntry",

    # Errors
    "WarehouseError",
    "AuthenticationError",
    "AlreadyExistsError",
    "NotFoundError",
    "JobError",
    "InsertError",

    # Connector
    "BigQueryConnector",
    "create_connector",
    "get_connector",
    "reset_connector"
]
