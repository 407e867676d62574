"""Tests for canonical records and schemas."""

import pytest

from provisioner.records import CanonicalRecord, FieldType, RecordSchema

SCHEMA = RecordSchema(
    kind="widget",
    fields={"id": FieldType.STRING, "label": FieldType.STRING, "enabled": FieldType.BOOL},
)


class TestRecordSchema:
    """Tests for RecordSchema."""

    def test_empty_draft_has_every_field(self) -> None:
        assert SCHEMA.empty() == {"id": None, "label": None, "enabled": None}

    def test_contains(self) -> None:
        assert "label" in SCHEMA
        assert "color" not in SCHEMA

    def test_missing_field_rejected(self) -> None:
        with pytest.raises(ValueError, match="missing=\\['enabled'\\]"):
            SCHEMA.validate({"id": "1", "label": None})

    def test_unknown_field_rejected(self) -> None:
        with pytest.raises(ValueError, match="unknown=\\['color'\\]"):
            SCHEMA.validate({"id": "1", "label": None, "enabled": None, "color": "red"})

    def test_mistyped_field_rejected(self) -> None:
        with pytest.raises(ValueError, match="widget.enabled must be a bool"):
            SCHEMA.validate({"id": "1", "label": None, "enabled": "true"})


class TestCanonicalRecord:
    """Tests for CanonicalRecord."""

    def test_mapping_behavior(self) -> None:
        record = CanonicalRecord(SCHEMA, {"id": "1", "label": "a", "enabled": True})

        assert record["label"] == "a"
        assert len(record) == 3
        assert set(record) == {"id", "label", "enabled"}
        assert record.get("missing") is None

    def test_equality_and_hash(self) -> None:
        a = CanonicalRecord(SCHEMA, {"id": "1", "label": None, "enabled": False})
        b = CanonicalRecord(SCHEMA, {"id": "1", "label": None, "enabled": False})

        assert a == b
        assert hash(a) == hash(b)
        assert a == {"id": "1", "label": None, "enabled": False}

    def test_to_dict_is_a_copy(self) -> None:
        record = CanonicalRecord(SCHEMA, {"id": "1", "label": None, "enabled": False})
        data = record.to_dict()
        data["id"] = "2"

        assert record["id"] == "1"

    def test_invalid_values_rejected(self) -> None:
        with pytest.raises(ValueError):
            CanonicalRecord(SCHEMA, {"id": "1"})
