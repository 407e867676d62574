"""Declarative apply/destroy on top of the lifecycle controller.

APPLY:
1. Read the resource by name
2. Absent: Create
3. Present: plan the mutable fields that differ from the declared spec
4. Non-empty plan: Update, otherwise nothing to do

DESTROY:
Delete when present, no-op otherwise.

Each run produces an ApplyResult that is logged with structured fields.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from .lifecycle import ResourceController, ResourceState
from .models import RepositoryChanges, RepositorySpec
from .records import CanonicalRecord

logger = logging.getLogger(__name__)


class ApplyAction(str, Enum):
    """What an apply or destroy run did."""

    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    DELETED = "deleted"
    ABSENT = "absent"


@dataclass
class ApplyResult:
    """Result of a single apply or destroy run."""

    resource: str
    action: ApplyAction = ApplyAction.UNCHANGED
    state: ResourceState = field(default_factory=ResourceState)
    changes: dict[str, Any] = field(default_factory=dict)
    start_time: datetime = field(default_factory=lambda: datetime.now(UTC))
    end_time: datetime | None = None
    error: Exception | None = None

    @property
    def duration_seconds(self) -> float:
        """Calculate duration in seconds."""
        if self.end_time is None:
            return 0.0
        return (self.end_time - self.start_time).total_seconds()

    @property
    def success(self) -> bool:
        return self.error is None


def plan_changes(spec: RepositorySpec, record: CanonicalRecord) -> RepositoryChanges:
    """Mutable fields of ``spec`` that differ from the current record.

    Fields left unset in the spec are not managed and never produce a change.
    """
    changes: dict[str, Any] = {}
    if spec.description is not None and spec.description != (record["description"] or ""):
        changes["description"] = spec.description
    if spec.filesafer is not None and spec.filesafer != bool(record["filesafer"]):
        changes["filesafer"] = spec.filesafer
    return RepositoryChanges(**changes)


class ResourceReconciler:
    """Converges one named resource toward its declared spec."""

    def __init__(self, controller: ResourceController) -> None:
        self._controller = controller

    async def apply(self, spec: RepositorySpec) -> ApplyResult:
        """Create or update the resource so it matches ``spec``.

        Errors are recorded on the result, logged, and re-raised.
        """
        result = ApplyResult(resource=spec.name)

        try:
            state = ResourceState(name=spec.name)
            record = await self._controller.fetch(state)

            if record is None:
                result.state = await self._controller.create(spec)
                result.action = ApplyAction.CREATED
            else:
                changes = plan_changes(spec, record)
                result.state = state
                if not changes.is_empty:
                    result.changes = changes.model_dump(exclude_none=True)
                    await self._controller.update(state, changes)
                    result.action = ApplyAction.UPDATED
        except Exception as e:
            result.error = e
            raise
        finally:
            result.end_time = datetime.now(UTC)
            self._log_result(result)

        return result

    async def destroy(self, name: str) -> ApplyResult:
        """Delete the named resource if it exists."""
        result = ApplyResult(resource=name)

        try:
            state = ResourceState(name=name)
            if await self._controller.fetch(state) is None:
                result.action = ApplyAction.ABSENT
            else:
                await self._controller.delete(state)
                result.action = ApplyAction.DELETED
            result.state = state
        except Exception as e:
            result.error = e
            raise
        finally:
            result.end_time = datetime.now(UTC)
            self._log_result(result)

        return result

    def _log_result(self, result: ApplyResult) -> None:
        """Log the run result with structured data."""
        extra: dict[str, Any] = {
            "resource": result.resource,
            "action": result.action.value,
            "duration_seconds": result.duration_seconds,
            "id": result.state.id,
        }
        if result.changes:
            extra["changes"] = sorted(result.changes)

        if result.error is not None:
            extra["error"] = str(result.error)
            extra["error_type"] = type(result.error).__name__
            logger.error("Apply failed", extra=extra)
        else:
            logger.info("Apply result", extra=extra)
