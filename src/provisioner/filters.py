"""Attribute filtering of canonical records.

MATCHING SEMANTICS:
- The record's field value is stringified first: True/False become
  "true"/"false", None becomes "" and strings are used as-is.
- Literal mode (default): the stringified value must equal one of the
  predicate's values. With case_sensitive=False both sides are case-folded.
- Regex mode: one of the predicate's values must match somewhere in the
  stringified value (re.search). With case_sensitive=False the pattern is
  compiled with re.IGNORECASE.
- A record is selected iff it satisfies every predicate of the set.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from .errors import FilterConfigurationError
from .records import CanonicalRecord, FieldValue, RecordSchema


def stringify(value: FieldValue) -> str:
    """Render a canonical field value the way filters compare it."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return value


@dataclass(frozen=True)
class FilterPredicate:
    """A field name plus the acceptable values for it.

    Attributes:
        name: Canonical field name to test.
        values: Acceptable string-encoded values (any one may match).
        regex: Treat values as regular expressions.
        case_sensitive: Compare case-sensitively.
    """

    name: str
    values: tuple[str, ...]
    regex: bool = False
    case_sensitive: bool = True
    _patterns: tuple[re.Pattern[str], ...] = field(
        default=(), init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", tuple(self.values))
        if not self.name:
            raise FilterConfigurationError("filter name cannot be empty")
        if not self.values:
            raise FilterConfigurationError(f"filter '{self.name}' needs at least one value")

        if self.regex:
            flags = 0 if self.case_sensitive else re.IGNORECASE
            try:
                patterns = tuple(re.compile(v, flags) for v in self.values)
            except re.error as e:
                raise FilterConfigurationError(
                    f"filter '{self.name}' has an invalid pattern: {e}"
                ) from e
            object.__setattr__(self, "_patterns", patterns)

    def matches(self, record: CanonicalRecord) -> bool:
        value = stringify(record.get(self.name))

        if self.regex:
            return any(p.search(value) for p in self._patterns)

        if self.case_sensitive:
            return value in self.values
        folded = value.casefold()
        return any(folded == v.casefold() for v in self.values)


def validate_filters(filter_set: Iterable[FilterPredicate], schema: RecordSchema) -> None:
    """Reject predicates naming fields outside ``schema``.

    Raises:
        FilterConfigurationError: On the first unknown field, listing valid ones.
    """
    for predicate in filter_set:
        if predicate.name not in schema:
            valid = sorted(schema.field_names)
            raise FilterConfigurationError(
                f"Unknown filter field '{predicate.name}' for {schema.kind}. "
                f"Valid fields: {valid}"
            )


def apply_filters(
    filter_set: Iterable[FilterPredicate],
    records: Sequence[CanonicalRecord],
    schema: RecordSchema,
) -> list[CanonicalRecord]:
    """Return the records satisfying every predicate, preserving order.

    An empty filter set returns the input unchanged.

    Raises:
        FilterConfigurationError: If a predicate names an unknown field.
    """
    predicates = list(filter_set)
    validate_filters(predicates, schema)

    if not predicates:
        return list(records)

    return [r for r in records if all(p.matches(r) for p in predicates)]


def parse_filter(
    expression: str, *, regex: bool = False, case_sensitive: bool = True
) -> FilterPredicate:
    """Parse a ``name=value1,value2`` expression into a predicate.

    Raises:
        FilterConfigurationError: If the expression has no ``=`` or no name.
    """
    name, sep, raw_values = expression.partition("=")
    if not sep:
        raise FilterConfigurationError(f"filter must look like name=value[,value...]: {expression}")

    values = tuple(v.strip() for v in raw_values.split(","))
    return FilterPredicate(
        name=name.strip(),
        values=values,
        regex=regex,
        case_sensitive=case_sensitive,
    )
