"""Shared warehouse types: explicit table schemas, job results and errors."""

import dataclasses
from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from google.cloud import bigquery


class FieldType(str, Enum):
    """Column types supported by table definitions."""
    STRING = "STRING"
    INTEGER = "INTEGER"
    FLOAT = "FLOAT"
    NUMERIC = "NUMERIC"
    BOOLEAN = "BOOLEAN"
    TIMESTAMP = "TIMESTAMP"
    DATE = "DATE"
    TIME = "TIME"
    BYTES = "BYTES"
    RECORD = "RECORD"


class FieldMode(str, Enum):
    NULLABLE = "NULLABLE"
    REQUIRED = "REQUIRED"
    REPEATED = "REPEATED"


@dataclass(frozen=True)
class FieldSpec:
    """A single column of a table schema."""

    name: str
    field_type: FieldType
    mode: FieldMode = FieldMode.NULLABLE
    description: Optional[str] = None
    fields: tuple = ()

    def __post_init__(self):
        if not self.name:
            raise ValueError("Field name must not be empty")
        object.__setattr__(self, "field_type", FieldType(self.field_type))
        object.__setattr__(self, "mode", FieldMode(self.mode))
        object.__setattr__(self, "fields", tuple(self.fields))
        if self.field_type == FieldType.RECORD and not self.fields:
            raise ValueError(f"RECORD field '{self.name}' needs at least one sub-field")
        if self.field_type != FieldType.RECORD and self.fields:
            raise ValueError(f"Only RECORD fields may have sub-fields, got {self.field_type.value} for '{self.name}'")

    def to_bigquery(self) -> bigquery.SchemaField:
        return bigquery.SchemaField(
            self.name,
            self.field_type.value,
            mode=self.mode.value,
            description=self.description,
            fields=[sub.to_bigquery() for sub in self.fields],
        )


# bool must be checked before int; datetime before date.
_PYTHON_TYPES = (
    (bool, FieldType.BOOLEAN),
    (int, FieldType.INTEGER),
    (float, FieldType.FLOAT),
    (Decimal, FieldType.NUMERIC),
    (str, FieldType.STRING),
    (bytes, FieldType.BYTES),
    (datetime, FieldType.TIMESTAMP),
    (date, FieldType.DATE),
    (time, FieldType.TIME),
)


@dataclass(frozen=True)
class TableSchema:
    """Ordered list of columns used to create a table."""

    fields: tuple

    def __post_init__(self):
        object.__setattr__(self, "fields", tuple(self.fields))
        names = [f.name for f in self.fields]
        if not names:
            raise ValueError("A table schema needs at least one field")
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate field names in schema: {duplicates}")

    @classmethod
    def of(cls, *fields: FieldSpec) -> "TableSchema":
        return cls(tuple(fields))

    @classmethod
    def from_sample(cls, sample: Any) -> "TableSchema":
        """Derive a schema from the values of a representative record.

        Accepts a mapping or a dataclass instance. Every value must be non-None
        so its column type can be decided; lists become REPEATED columns typed
        by their first element and nested mappings become RECORD columns.

        For example ``{"name": "n1", "num": 12}`` gives a STRING column
        ``name`` followed by an INTEGER column ``num``.
        """
        return cls(tuple(_fields_from_record(_as_mapping(sample))))

    def to_bigquery(self) -> List[bigquery.SchemaField]:
        return [f.to_bigquery() for f in self.fields]

    @property
    def field_names(self) -> List[str]:
        return [f.name for f in self.fields]


def _as_mapping(sample: Any) -> Mapping[str, Any]:
    if dataclasses.is_dataclass(sample) and not isinstance(sample, type):
        return dataclasses.asdict(sample)
    if isinstance(sample, Mapping):
        return sample
    raise TypeError(
        f"Cannot derive a schema from {type(sample).__name__}; "
        "pass a mapping or a dataclass instance"
    )


def _fields_from_record(record: Mapping[str, Any]) -> List[FieldSpec]:
    return [_field_from_value(str(name), value) for name, value in record.items()]


def _field_from_value(name: str, value: Any) -> FieldSpec:
    mode = FieldMode.NULLABLE
    if isinstance(value, (list, tuple)):
        if not value:
            raise ValueError(f"Cannot infer the element type of empty list field '{name}'")
        mode = FieldMode.REPEATED
        value = value[0]

    if value is None:
        raise ValueError(f"Cannot infer the type of field '{name}' from None")

    if isinstance(value, Mapping) or (dataclasses.is_dataclass(value) and not isinstance(value, type)):
        return FieldSpec(
            name,
            FieldType.RECORD,
            mode=mode,
            fields=tuple(_fields_from_record(_as_mapping(value))),
        )

    for python_type, field_type in _PYTHON_TYPES:
        if isinstance(value, python_type):
            return FieldSpec(name, field_type, mode=mode)

    raise TypeError(f"Unsupported value type {type(value).__name__} for field '{name}'")


@dataclass
class JobResult:
    """Terminal state of a copy, load or extract job."""

    job_id: str
    job_type: str
    state: str
    output_rows: Optional[int] = None
    duration: Optional[float] = None

    @property
    def succeeded(self) -> bool:
        return self.state == "DONE"


@dataclass
class InsertErrorEntry:
    """Errors reported for one row of a streaming insert."""

    index: Optional[int]
    errors: List[Dict[str, Any]] = field(default_factory=list)


class WarehouseError(Exception):
    """Base class for warehouse failures."""
    pass


class AuthenticationError(WarehouseError):
    """Raised when credentials are missing, unreadable or malformed."""
    pass


class AlreadyExistsError(WarehouseError):
    """Raised when a dataset or table being created already exists."""
    pass


class NotFoundError(WarehouseError):
    """Raised when a referenced dataset or table does not exist."""
    pass


class JobError(WarehouseError):
    """Raised when a copy, load or extract job fails or cannot be awaited."""

    def __init__(self, message: str, job_id: Optional[str] = None, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.job_id = job_id
        self.errors = errors or []


class InsertError(WarehouseError):
    """Raised when a streaming insert rejects rows."""

    def __init__(self, message: str, errors: Optional[List[InsertErrorEntry]] = None):
        super().__init__(message)
        self.errors = errors or []
