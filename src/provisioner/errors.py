"""Error taxonomy for reconciliation operations.

Every error carries the identity of the resource it concerns and, where one
was observed, the last known remote state. Messages are meant to be enough
for an operator to remediate by hand: the core never rolls back, so a
failure after a successful create can leave a real remote object behind.
"""

from __future__ import annotations


class ProvisionerError(Exception):
    """Base class for all reconciliation errors."""

    def __init__(
        self,
        message: str,
        *,
        resource: str | None = None,
        last_state: str | None = None,
    ) -> None:
        super().__init__(message)
        self.resource = resource
        self.last_state = last_state


class TransportError(ProvisionerError):
    """A gateway call failed (network, auth, remote 4xx/5xx).

    Always surfaced to the caller, never retried by the core.
    """

    def __init__(
        self,
        message: str,
        *,
        operation: str,
        resource: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, resource=resource)
        self.operation = operation
        self.status_code = status_code


class NotFoundError(ProvisionerError):
    """A singular read found no matching record."""

    pass


class AmbiguousResultError(ProvisionerError):
    """A singular read found more than one matching record."""

    def __init__(self, count: int, *, resource: str | None = None) -> None:
        super().__init__(
            f"more than one found results ({count}). "
            "please change search criteria and try again",
            resource=resource,
        )
        self.count = count


class WaitTimeoutError(ProvisionerError):
    """A wait loop exceeded its bound."""

    def __init__(
        self,
        message: str,
        *,
        resource: str | None = None,
        last_state: str | None = None,
        polls: int = 0,
    ) -> None:
        super().__init__(message, resource=resource, last_state=last_state)
        self.polls = polls


class ActivationTimeoutError(WaitTimeoutError):
    """A created resource did not become visible before the create timeout."""

    pass


class WaitAbortedError(ProvisionerError):
    """A refresh failed while waiting; the cause is chained."""

    pass


class UnexpectedStateError(ProvisionerError):
    """A refresh reported a label that is neither pending nor target."""

    pass


class CreateFailedError(ProvisionerError):
    """The remote create call failed. Not retryable by the core."""

    pass


class UpdateFailedError(ProvisionerError):
    """The remote update call failed. Remote state is left as returned."""

    pass


class DeleteFailedError(ProvisionerError):
    """A stage of the delete flow failed. Local identity is left untouched."""

    pass


class FilterConfigurationError(ProvisionerError):
    """A filter names an unknown field or carries an invalid pattern."""

    pass


class MalformedRecordError(ProvisionerError):
    """A raw backend record lacks a field its flavor guarantees."""

    pass
