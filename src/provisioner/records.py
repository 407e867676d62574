"""Canonical record type shared by every backend flavor.

A canonical record is an immutable mapping bound to a RecordSchema. The key
set is checked against the schema when the record is built, so downstream
filtering and diffing can rely on every field being present (absent
relations are explicit None, never missing keys).
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

FieldValue = Union[str, bool, None]


class FieldType(str, Enum):
    """Value types a canonical field may hold (besides None)."""

    STRING = "string"
    BOOL = "bool"


@dataclass(frozen=True)
class RecordSchema:
    """Enumerated field set of one resource kind.

    Attributes:
        kind: Resource kind name, used in error messages.
        fields: Field name to value type.
    """

    kind: str
    fields: Mapping[str, FieldType]

    def __contains__(self, name: object) -> bool:
        return name in self.fields

    @property
    def field_names(self) -> frozenset[str]:
        return frozenset(self.fields)

    def empty(self) -> dict[str, FieldValue]:
        """Return a draft with every field explicitly set to None."""
        return dict.fromkeys(self.fields)

    def validate(self, values: Mapping[str, Any]) -> None:
        """Check a draft against this schema.

        Raises:
            ValueError: If fields are missing, unknown, or mistyped.
        """
        keys = set(values)
        missing = self.field_names - keys
        unknown = keys - self.field_names
        if missing or unknown:
            raise ValueError(
                f"{self.kind} record does not match schema: "
                f"missing={sorted(missing)} unknown={sorted(unknown)}"
            )

        for name, value in values.items():
            if value is None:
                continue
            expected = self.fields[name]
            if expected == FieldType.BOOL and not isinstance(value, bool):
                raise ValueError(f"{self.kind}.{name} must be a bool, got {type(value).__name__}")
            if expected == FieldType.STRING and not isinstance(value, str):
                raise ValueError(f"{self.kind}.{name} must be a str, got {type(value).__name__}")


class CanonicalRecord(Mapping[str, FieldValue]):
    """Flavor-independent representation of a remote resource."""

    __slots__ = ("_schema", "_values")

    def __init__(self, schema: RecordSchema, values: Mapping[str, FieldValue]) -> None:
        schema.validate(values)
        self._schema = schema
        self._values = dict(values)

    @property
    def schema(self) -> RecordSchema:
        return self._schema

    def __getitem__(self, key: str) -> FieldValue:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, CanonicalRecord):
            return self._schema.kind == other._schema.kind and self._values == other._values
        if isinstance(other, Mapping):
            return self._values == dict(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash((self._schema.kind, tuple(sorted(self._values.items(), key=lambda i: i[0]))))

    def __repr__(self) -> str:
        return f"CanonicalRecord({self._schema.kind}, {self._values!r})"

    def to_dict(self) -> dict[str, FieldValue]:
        """Return a plain dict copy, e.g. for JSON output or state persistence."""
        return dict(self._values)
