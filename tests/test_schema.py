"""Tests for explicit table schemas and value-based field derivation."""

from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from warehouse_connector.warehouse import FieldMode, FieldSpec, FieldType, TableSchema


@dataclass
class Score:
    name: str
    num: int


class TestTableSchema:
    """Tests for TableSchema construction and conversion."""

    def test_sample_record_gives_string_and_integer_columns(self):
        schema = TableSchema.from_sample({"name": "n1", "num": 12})

        assert schema.field_names == ["name", "num"]
        assert [f.field_type for f in schema.fields] == [FieldType.STRING, FieldType.INTEGER]
        assert all(f.mode == FieldMode.NULLABLE for f in schema.fields)

    def test_dataclass_sample(self):
        schema = TableSchema.from_sample(Score(name="n1", num=12))

        assert schema == TableSchema.of(
            FieldSpec("name", FieldType.STRING),
            FieldSpec("num", FieldType.INTEGER),
        )

    def test_scalar_types(self):
        schema = TableSchema.from_sample({
            "flag": True,
            "ratio": 0.5,
            "amount": Decimal("1.10"),
            "raw": b"\x00",
            "at": datetime(2024, 1, 1, tzinfo=timezone.utc),
            "day": date(2024, 1, 1),
        })

        assert [f.field_type for f in schema.fields] == [
            FieldType.BOOLEAN,
            FieldType.FLOAT,
            FieldType.NUMERIC,
            FieldType.BYTES,
            FieldType.TIMESTAMP,
            FieldType.DATE,
        ]

    def test_lists_and_nested_records(self):
        schema = TableSchema.from_sample({
            "tags": ["a", "b"],
            "owner": {"id": 7, "email": "x@example.com"},
        })

        tags, owner = schema.fields
        assert tags.field_type == FieldType.STRING
        assert tags.mode == FieldMode.REPEATED
        assert owner.field_type == FieldType.RECORD
        assert [f.name for f in owner.fields] == ["id", "email"]

    def test_none_value_cannot_be_typed(self):
        with pytest.raises(ValueError, match="None"):
            TableSchema.from_sample({"name": None})

    def test_empty_list_cannot_be_typed(self):
        with pytest.raises(ValueError, match="empty list"):
            TableSchema.from_sample({"tags": []})

    def test_unsupported_sample(self):
        with pytest.raises(TypeError):
            TableSchema.from_sample(["n1", 12])

    def test_duplicate_field_names_rejected(self):
        with pytest.raises(ValueError, match="Duplicate"):
            TableSchema.of(FieldSpec("a", FieldType.STRING), FieldSpec("a", FieldType.INTEGER))

    def test_empty_schema_rejected(self):
        with pytest.raises(ValueError):
            TableSchema(())

    def test_record_field_needs_sub_fields(self):
        with pytest.raises(ValueError, match="RECORD"):
            FieldSpec("owner", FieldType.RECORD)

    def test_string_types_are_coerced(self):
        spec = FieldSpec("name", "STRING", mode="REQUIRED")
        assert spec.field_type is FieldType.STRING
        assert spec.mode is FieldMode.REQUIRED

    def test_to_bigquery(self):
        schema = TableSchema.of(
            FieldSpec("name", FieldType.STRING, mode=FieldMode.REQUIRED, description="player"),
            FieldSpec("owner", FieldType.RECORD, fields=(FieldSpec("id", FieldType.INTEGER),)),
        )

        name, owner = schema.to_bigquery()
        assert (name.name, name.field_type, name.mode, name.description) == ("name", "STRING", "REQUIRED", "player")
        assert owner.field_type == "RECORD"
        assert [(f.name, f.field_type) for f in owner.fields] == [("id", "INTEGER")]
