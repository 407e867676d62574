"""Tests for the attribute filter engine."""

import pytest

from cloud_mock import vpc_public_ip
from provisioner.config import BackendFlavor
from provisioner.errors import FilterConfigurationError
from provisioner.filters import FilterPredicate, apply_filters, parse_filter, stringify
from provisioner.normalizer import PUBLIC_IP_NORMALIZER, PUBLIC_IP_SCHEMA
from provisioner.records import CanonicalRecord


@pytest.fixture
def records() -> list[CanonicalRecord]:
    raws = [
        vpc_public_ip("1", "10.0.0.1", description="web", server_instance_no="11"),
        vpc_public_ip("2", "10.0.0.2", description="Web-backup"),
        vpc_public_ip("3", "10.0.0.3", description="db", server_instance_no="33"),
    ]
    return PUBLIC_IP_NORMALIZER.normalize_all(raws, BackendFlavor.VPC)


def ids(records: list[CanonicalRecord]) -> list[str]:
    return [r["id"] for r in records]


class TestStringify:
    """Tests for stringify."""

    def test_values(self) -> None:
        assert stringify(True) == "true"
        assert stringify(False) == "false"
        assert stringify(None) == ""
        assert stringify("abc") == "abc"


class TestFilterPredicate:
    """Tests for FilterPredicate construction."""

    def test_values_coerced_to_tuple(self) -> None:
        predicate = FilterPredicate(name="id", values=["1", "2"])  # type: ignore[arg-type]

        assert predicate.values == ("1", "2")
        assert predicate == FilterPredicate(name="id", values=("1", "2"))

    def test_empty_values_rejected(self) -> None:
        with pytest.raises(FilterConfigurationError, match="at least one value"):
            FilterPredicate(name="id", values=())

    def test_invalid_pattern_rejected(self) -> None:
        with pytest.raises(FilterConfigurationError, match="invalid pattern"):
            FilterPredicate(name="id", values=("[",), regex=True)


class TestApplyFilters:
    """Tests for apply_filters."""

    def test_empty_filter_set_returns_input(self, records: list[CanonicalRecord]) -> None:
        assert apply_filters([], records, PUBLIC_IP_SCHEMA) == records

    def test_literal_match(self, records: list[CanonicalRecord]) -> None:
        selected = apply_filters(
            [FilterPredicate(name="description", values=("web",))], records, PUBLIC_IP_SCHEMA
        )

        assert ids(selected) == ["1"]

    def test_any_value_matches(self, records: list[CanonicalRecord]) -> None:
        selected = apply_filters(
            [FilterPredicate(name="id", values=("3", "1"))], records, PUBLIC_IP_SCHEMA
        )

        assert ids(selected) == ["1", "3"]

    def test_every_predicate_must_match(self, records: list[CanonicalRecord]) -> None:
        selected = apply_filters(
            [
                FilterPredicate(name="is_associated", values=("true",)),
                FilterPredicate(name="description", values=("db",)),
            ],
            records,
            PUBLIC_IP_SCHEMA,
        )

        assert ids(selected) == ["3"]

    def test_boolean_field_matches_string_form(self, records: list[CanonicalRecord]) -> None:
        selected = apply_filters(
            [FilterPredicate(name="is_associated", values=("false",))], records, PUBLIC_IP_SCHEMA
        )

        assert ids(selected) == ["2"]

    def test_none_field_matches_empty_string(self, records: list[CanonicalRecord]) -> None:
        selected = apply_filters(
            [FilterPredicate(name="server_name", values=("",))], records, PUBLIC_IP_SCHEMA
        )

        assert ids(selected) == ["1", "2", "3"]

    def test_case_insensitive_literal(self, records: list[CanonicalRecord]) -> None:
        selected = apply_filters(
            [FilterPredicate(name="description", values=("WEB",), case_sensitive=False)],
            records,
            PUBLIC_IP_SCHEMA,
        )

        assert ids(selected) == ["1"]

    def test_regex_search(self, records: list[CanonicalRecord]) -> None:
        selected = apply_filters(
            [FilterPredicate(name="description", values=("^[Ww]eb",), regex=True)],
            records,
            PUBLIC_IP_SCHEMA,
        )

        assert ids(selected) == ["1", "2"]

    def test_regex_ignore_case(self, records: list[CanonicalRecord]) -> None:
        selected = apply_filters(
            [
                FilterPredicate(
                    name="description", values=("backup$",), regex=True, case_sensitive=False
                )
            ],
            records,
            PUBLIC_IP_SCHEMA,
        )

        assert ids(selected) == ["2"]

    def test_selection_is_a_subset(self, records: list[CanonicalRecord]) -> None:
        selected = apply_filters(
            [FilterPredicate(name="public_ip", values=("10.0.0", "10.0.0.2"))],
            records,
            PUBLIC_IP_SCHEMA,
        )

        assert all(r in records for r in selected)
        assert ids(selected) == ["2"]

    def test_unknown_field_rejected(self, records: list[CanonicalRecord]) -> None:
        with pytest.raises(FilterConfigurationError) as exc_info:
            apply_filters(
                [FilterPredicate(name="color", values=("red",))], records, PUBLIC_IP_SCHEMA
            )

        message = str(exc_info.value)
        assert "color" in message
        assert "public_ip_no" in message

    def test_unknown_field_rejected_with_no_records(self) -> None:
        with pytest.raises(FilterConfigurationError):
            apply_filters([FilterPredicate(name="color", values=("red",))], [], PUBLIC_IP_SCHEMA)


class TestParseFilter:
    """Tests for parse_filter."""

    def test_single_value(self) -> None:
        assert parse_filter("zone=KR-1") == FilterPredicate(name="zone", values=("KR-1",))

    def test_multiple_values(self) -> None:
        predicate = parse_filter(" id = 1, 2 ", regex=True, case_sensitive=False)

        assert predicate.name == "id"
        assert predicate.values == ("1", "2")
        assert predicate.regex is True
        assert predicate.case_sensitive is False

    def test_missing_separator(self) -> None:
        with pytest.raises(FilterConfigurationError, match="name=value"):
            parse_filter("zone")
