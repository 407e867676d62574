"""Resource lifecycle controller.

Orchestrates the remote existence of one resource:

    Create:  gateway create -> activation wait -> Read
    Read:    lookup by name (or by id after an import) -> normalize
    Update:  gateway update (mutable fields only) -> Read
    Delete:  activation wait -> gateway delete -> deletion wait

The controller keeps no state between calls. The caller owns a ResourceState
and passes it in; Read clears it when the remote object is gone, Delete
clears it only once the deletion is confirmed.

There is no rollback. A create that succeeds remotely but never becomes
visible leaves a real object behind; the next Read (or an operator) must
deal with it.

Gateway calls block. The async operations run them in the default executor
so other tasks keep running while a request is in flight.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from typing import Any

from .config import BackendFlavor, ProviderConfig
from .errors import (
    ActivationTimeoutError,
    CreateFailedError,
    DeleteFailedError,
    NotFoundError,
    ProvisionerError,
    TransportError,
    UpdateFailedError,
    WaitTimeoutError,
)
from .filters import FilterPredicate, apply_filters
from .gateway import ListingGateway, RawRecord, ResourceGateway
from .models import ListQuery, RepositoryChanges, RepositorySpec
from .normalizer import PUBLIC_IP_NORMALIZER, REPOSITORY_NORMALIZER, Normalizer
from .records import CanonicalRecord
from .resolver import resolve_one
from .session import ProviderSession
from .waiter import PollResult, PollState, StateWaiter

logger = logging.getLogger(__name__)


@dataclass
class ResourceState:
    """Caller-owned local state of one resource.

    Attributes:
        id: Remote-assigned identifier, empty when the resource is gone.
        name: Human-assigned unique name, empty when only the id is known.
        attributes: Last canonical record read for this resource.
    """

    id: str = ""
    name: str = ""
    attributes: CanonicalRecord | None = None

    @property
    def exists(self) -> bool:
        return bool(self.id)

    @property
    def identity(self) -> str:
        """Best available identity for log and error messages."""
        if self.name and self.id:
            return f"{self.name} (id: {self.id})"
        return self.name or self.id or "<unknown>"

    def clear(self) -> None:
        self.id = ""
        self.attributes = None

    def apply(self, record: CanonicalRecord) -> None:
        self.id = record["id"] or ""
        name = record.get("name")
        if isinstance(name, str) and name:
            self.name = name
        self.attributes = record


class ResourceLister:
    """List and singular reads through a listing gateway.

    The backend flavor is threaded explicitly to the normalizer.
    """

    def __init__(
        self,
        gateway: ListingGateway,
        normalizer: Normalizer,
        flavor: BackendFlavor,
    ) -> None:
        self._gateway = gateway
        self._normalizer = normalizer
        self._flavor = flavor

    @classmethod
    def for_public_ips(cls, session: ProviderSession) -> ResourceLister:
        return cls(session.public_ips, PUBLIC_IP_NORMALIZER, session.config.flavor)

    @property
    def schema(self):
        return self._normalizer.schema

    def list(
        self,
        filter_set: Iterable[FilterPredicate] = (),
        query: ListQuery | None = None,
    ) -> list[CanonicalRecord]:
        """List canonical records matching every filter.

        Raises:
            FilterConfigurationError: If a filter names an unknown field.
            TransportError: If the gateway call fails.
        """
        predicates = list(filter_set)
        raws = self._gateway.list(query)
        records = self._normalizer.normalize_all(raws, self._flavor)
        selected = apply_filters(predicates, records, self._normalizer.schema)

        logger.info(
            "Listed resources",
            extra={
                "kind": self._normalizer.schema.kind,
                "flavor": self._flavor.value,
                "fetched": len(records),
                "selected": len(selected),
                "filters": [p.name for p in predicates],
            },
        )
        return selected

    def read_singular(
        self,
        filter_set: Iterable[FilterPredicate] = (),
        query: ListQuery | None = None,
    ) -> CanonicalRecord:
        """List and require exactly one match.

        Raises:
            NotFoundError: If nothing matches.
            AmbiguousResultError: If more than one record matches.
        """
        predicates = list(filter_set)
        records = self.list(predicates, query)
        description = ", ".join(f"{p.name}={'|'.join(p.values)}" for p in predicates)
        return resolve_one(
            records,
            resource=f"{self._normalizer.schema.kind}[{description}]",
        )


class ResourceController:
    """Create, read, update and delete one kind of named resource."""

    def __init__(
        self,
        gateway: ResourceGateway,
        config: ProviderConfig,
        *,
        normalizer: Normalizer = REPOSITORY_NORMALIZER,
        waiter: StateWaiter | None = None,
    ) -> None:
        self._gateway = gateway
        self._config = config
        self._normalizer = normalizer
        self._flavor = config.flavor
        self._waiter = waiter or StateWaiter.from_config(config)
        self._lister = ResourceLister(gateway, normalizer, config.flavor)

    @classmethod
    def for_repositories(
        cls, session: ProviderSession, *, waiter: StateWaiter | None = None
    ) -> ResourceController:
        return cls(session.repositories, session.config, waiter=waiter)

    @property
    def kind(self) -> str:
        return self._normalizer.schema.kind

    # -------------------------------------------------------------------------
    # Create
    # -------------------------------------------------------------------------

    async def create(self, spec: RepositorySpec) -> ResourceState:
        """Create the resource and wait until it is visible by name.

        Returns:
            The state of the new resource; ``state.id`` is the canonical id.

        Raises:
            CreateFailedError: If the create call fails.
            ActivationTimeoutError: If the resource never became visible.
            WaitAbortedError: If a lookup failed while waiting.
        """
        logger.info("Creating resource", extra={"kind": self.kind, "resource": spec.name})

        try:
            remote_id = await self._run(self._gateway.create, spec)
        except TransportError as e:
            raise CreateFailedError(
                f"Fail to create {self.kind} {spec.name}: {e}", resource=spec.name
            ) from e

        try:
            await self.wait_for_active(spec.name, self._config.create_timeout_seconds)
        except WaitTimeoutError as e:
            logger.error(
                "Created resource did not become active, remote object may be orphaned",
                extra={"kind": self.kind, "resource": spec.name, "remote_id": remote_id},
            )
            raise ActivationTimeoutError(
                f"Unable to search {self.kind} {spec.name} after create: {e}",
                resource=spec.name,
                last_state=e.last_state,
                polls=e.polls,
            ) from e

        state = ResourceState(name=spec.name)
        if await self.fetch(state) is None:
            raise NotFoundError(
                f"{self.kind} {spec.name} disappeared right after activation",
                resource=spec.name,
            )

        logger.info(
            "Resource created",
            extra={"kind": self.kind, "resource": spec.name, "id": state.id},
        )
        return state

    # -------------------------------------------------------------------------
    # Read
    # -------------------------------------------------------------------------

    def read(self, state: ResourceState) -> CanonicalRecord | None:
        """Refresh ``state`` from the backend.

        Looks up by name when known, otherwise by id. An absent resource
        clears the state and returns None; that is not an error.

        Raises:
            TransportError: If the lookup fails.
            ValueError: If the state has neither name nor id.
        """
        if state.name:
            raw = self._gateway.get_by_name(state.name)
        elif state.id:
            raw = self._gateway.get_by_id(state.id)
        else:
            raise ValueError(f"Cannot read {self.kind}: state has neither name nor id")

        if raw is None:
            logger.info(
                "Resource not found, clearing local state",
                extra={"kind": self.kind, "resource": state.identity},
            )
            state.clear()
            return None

        record = self._normalizer.normalize(raw, self._flavor)
        state.apply(record)
        return record

    async def fetch(self, state: ResourceState) -> CanonicalRecord | None:
        """Same as read(), without blocking the event loop."""
        return await self._run(self.read, state)

    def read_by_name(self, name: str) -> CanonicalRecord:
        """Singular read by name; absence is an error here.

        Raises:
            NotFoundError: If no resource has this name.
        """
        raw = self._gateway.get_by_name(name)
        if raw is None:
            raise NotFoundError(f"there is no such {self.kind}: {name}", resource=name)
        return self._normalizer.normalize(raw, self._flavor)

    def import_state(self, resource_id: str) -> ResourceState:
        """Build a state from an id only, resolving the name via the backend.

        Raises:
            NotFoundError: If no resource has this id.
        """
        state = ResourceState(id=resource_id)
        if self.read(state) is None:
            raise NotFoundError(
                f"there is no {self.kind} with id {resource_id}", resource=resource_id
            )
        return state

    def list(
        self,
        filter_set: Iterable[FilterPredicate] = (),
        query: ListQuery | None = None,
    ) -> list[CanonicalRecord]:
        return self._lister.list(filter_set, query)

    def read_singular(
        self,
        filter_set: Iterable[FilterPredicate] = (),
        query: ListQuery | None = None,
    ) -> CanonicalRecord:
        return self._lister.read_singular(filter_set, query)

    # -------------------------------------------------------------------------
    # Update
    # -------------------------------------------------------------------------

    async def update(
        self, state: ResourceState, changes: RepositoryChanges
    ) -> CanonicalRecord | None:
        """Send the mutable fields, then refresh computed fields.

        The update call is bounded by the update timeout.

        Raises:
            UpdateFailedError: If the update call fails or times out.
        """
        if not changes.is_empty:
            logger.info(
                "Updating resource",
                extra={
                    "kind": self.kind,
                    "resource": state.identity,
                    "fields": sorted(changes.model_dump(exclude_none=True)),
                },
            )
            timeout = self._config.update_timeout_seconds
            try:
                await asyncio.wait_for(
                    self._run(self._gateway.update, state.name, changes),
                    timeout=timeout,
                )
            except TransportError as e:
                raise UpdateFailedError(
                    f"Fail to update {self.kind} {state.identity}: {e}",
                    resource=state.identity,
                ) from e
            except TimeoutError as e:
                logger.error(
                    "Update timed out",
                    extra={"kind": self.kind, "resource": state.identity, "timeout": timeout},
                )
                raise UpdateFailedError(
                    f"Fail to update {self.kind} {state.identity}: no response in {timeout}s",
                    resource=state.identity,
                ) from e

        return await self.fetch(state)

    # -------------------------------------------------------------------------
    # Delete
    # -------------------------------------------------------------------------

    async def delete(self, state: ResourceState) -> None:
        """Delete once active, then wait until the id no longer resolves.

        On failure the state is left untouched so a retry can resume.

        Raises:
            WaitTimeoutError: If a wait exceeded its bound.
            DeleteFailedError: If any other stage failed.
        """
        if not (state.id and state.name) and await self.fetch(state) is None:
            logger.info("Resource already absent", extra={"kind": self.kind})
            return

        name = state.name
        resource_id = state.id
        logger.info(
            "Deleting resource",
            extra={"kind": self.kind, "resource": name, "id": resource_id},
        )

        try:
            await self.wait_for_active(name, self._config.create_timeout_seconds)
            await self._run(self._gateway.delete, name)
            await self.wait_for_deletion(resource_id, self._config.delete_timeout_seconds)
        except WaitTimeoutError:
            raise
        except ProvisionerError as e:
            raise DeleteFailedError(
                f"Fail to delete {self.kind} {state.identity}: {e}",
                resource=state.identity,
                last_state=e.last_state,
            ) from e

        state.clear()
        logger.info("Resource deleted", extra={"kind": self.kind, "resource": name})

    # -------------------------------------------------------------------------
    # Waits
    # -------------------------------------------------------------------------

    async def wait_for_active(self, name: str, timeout: float) -> RawRecord:
        """Wait until a lookup by name returns a record with exactly that name."""
        return await self._waiter.wait_for(
            pending=PollState.PENDING,
            target=PollState.TARGET_REACHED,
            refresh=self._activation_refresh(name),
            timeout=timeout,
            min_interval=self._config.poll_min_interval_seconds,
            initial_delay=self._config.poll_delay_seconds,
            resource=f"{self.kind} {name}",
        )

    async def wait_for_deletion(self, resource_id: str, timeout: float) -> None:
        """Wait until a lookup by id returns nothing."""
        await self._waiter.wait_for(
            pending=PollState.PENDING,
            target=PollState.NOT_FOUND,
            refresh=self._deletion_refresh(resource_id),
            timeout=timeout,
            min_interval=self._config.poll_min_interval_seconds,
            initial_delay=self._config.poll_delay_seconds,
            resource=f"{self.kind} id {resource_id}",
        )

    async def _run(self, func: Callable[..., Any], *args: Any) -> Any:
        # Gateways are synchronous, run them in the default executor
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, func, *args)

    def _activation_refresh(self, name: str) -> Callable[[], Awaitable[PollResult]]:
        async def refresh() -> PollResult:
            raw = await self._run(self._gateway.get_by_name, name)
            if raw is None:
                return PollResult(None, PollState.PENDING)
            if raw.get("name") == name:
                return PollResult(raw, PollState.TARGET_REACHED)

            # Listing can briefly return an unrelated entry while the new one propagates
            logger.debug(
                "Lookup returned a different resource, still pending",
                extra={"kind": self.kind, "resource": name, "returned": raw.get("name")},
            )
            return PollResult(None, PollState.PENDING)

        return refresh

    def _deletion_refresh(self, resource_id: str) -> Callable[[], Awaitable[PollResult]]:
        async def refresh() -> PollResult:
            raw = await self._run(self._gateway.get_by_id, resource_id)
            if raw is None:
                return PollResult(resource_id, PollState.NOT_FOUND)
            return PollResult(raw, PollState.PENDING)

        return refresh
