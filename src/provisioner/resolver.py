"""Single-result resolution for singular reads."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TypeVar

from .errors import AmbiguousResultError, NotFoundError

T = TypeVar("T")


def resolve_one(records: Sequence[T], *, resource: str | None = None) -> T:
    """Return the only record of ``records``.

    Args:
        records: Filtered candidates.
        resource: Description of what was looked up, for error messages.

    Raises:
        NotFoundError: If there are no records.
        AmbiguousResultError: If there is more than one record.
    """
    if not records:
        raise NotFoundError(
            "no results. please change search criteria and try again",
            resource=resource,
        )
    if len(records) > 1:
        raise AmbiguousResultError(len(records), resource=resource)
    return records[0]
