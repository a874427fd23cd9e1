"""Schema definitions for warehouse layout files (datasets, tables, fields)."""

from typing import List, Optional
from pydantic import BaseModel, Field, validator

from ..warehouse.base import FieldMode, FieldSpec, FieldType, TableSchema


class FieldDefinition(BaseModel):
    """A single column in a table definition."""

    name: str = Field(..., description="Column name")
    type: FieldType = Field(..., description="Column type")
    mode: FieldMode = Field(default=FieldMode.NULLABLE, description="NULLABLE, REQUIRED or REPEATED")
    description: Optional[str] = Field(None, description="Optional column description")
    fields: List["FieldDefinition"] = Field(default_factory=list, description="Sub-fields of a RECORD column")

    @validator('type', 'mode', pre=True)
    def normalize_case(cls, v):
        return v.upper() if isinstance(v, str) else v

    def to_field_spec(self) -> FieldSpec:
        return FieldSpec(
            name=self.name,
            field_type=self.type,
            mode=self.mode,
            description=self.description,
            fields=tuple(sub.to_field_spec() for sub in self.fields),
        )


class TableDefinition(BaseModel):
    """A table to provision inside a dataset."""

    table_id: str = Field(..., description="Table identifier")
    expiration_seconds: int = Field(default=0, description="Partition expiration; 0 = never")
    fields: List[FieldDefinition] = Field(..., description="Explicit column list")

    @validator('expiration_seconds')
    def validate_expiration(cls, v):
        if v < 0:
            raise ValueError("expiration_seconds must not be negative")
        return v

    @validator('fields')
    def validate_fields(cls, v):
        if not v:
            raise ValueError("A table needs at least one field")
        return v

    def to_table_schema(self) -> TableSchema:
        return TableSchema(tuple(f.to_field_spec() for f in self.fields))


class DatasetDefinition(BaseModel):
    """A dataset and the tables it should contain."""

    dataset_id: str = Field(..., description="Dataset identifier")
    tables: List[TableDefinition] = Field(default_factory=list)

    @validator('tables')
    def validate_unique_tables(cls, v):
        table_ids = [t.table_id for t in v]
        duplicates = sorted({t for t in table_ids if table_ids.count(t) > 1})
        if duplicates:
            raise ValueError(f"Duplicate table ids: {duplicates}")
        return v


class WarehouseConfig(BaseModel):
    """Complete warehouse layout."""

    version: str = Field(default="1.0.0")
    project_id: Optional[str] = Field(None, description="Overrides the configured project when set")
    datasets: List[DatasetDefinition] = Field(default_factory=list)

    @validator('datasets')
    def validate_unique_datasets(cls, v):
        dataset_ids = [d.dataset_id for d in v]
        duplicates = sorted({d for d in dataset_ids if dataset_ids.count(d) > 1})
        if duplicates:
            raise ValueError(f"Duplicate dataset ids: {duplicates}")
        return v

    @property
    def table_count(self) -> int:
        return sum(len(d.tables) for d in self.datasets)


FieldDefinition.model_rebuild()


# Example layout used by documentation and tests
SCORES_LAYOUT_EXAMPLE = {
    "version": "1.0.0",
    "datasets": [
        {
            "dataset_id": "testdataset",
            "tables": [
                {
                    "table_id": "test_table",
                    "expiration_seconds": 0,
                    "fields": [
                        {"name": "name", "type": "STRING"},
                        {"name": "num", "type": "INTEGER"}
                    ]
                }
            ]
        }
    ]
}
