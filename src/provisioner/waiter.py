"""Pending/target polling loop for eventually consistent operations.

The remote control plane applies creates and deletes asynchronously, so a
mutation returning success says nothing about when the change becomes
visible. StateWaiter drives a side-effect-free refresh function until it
reports the target state, bounded by a timeout.

LOOP:
1. Sleep the initial delay, which counts against the timeout
2. Refresh; an exception aborts the wait immediately (WaitAbortedError)
3. Target state: return the payload
4. Pending state: sleep, doubling the interval from min_interval up to
   max_interval, never past the deadline
5. Deadline reached: WaitTimeoutError with the last observed state

UNEXPECTED STATES:
A refresh may report a label that is neither pending nor target. With
UnexpectedStatePolicy.PENDING (default) it is logged and retried as pending,
and kept as the last observed state so a timeout reports it. With
UnexpectedStatePolicy.ERROR the wait fails at once with UnexpectedStateError.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from .config import (
    DEFAULT_POLL_MAX_INTERVAL_SECONDS,
    ProviderConfig,
    UnexpectedStatePolicy,
)
from .errors import UnexpectedStateError, WaitAbortedError, WaitTimeoutError

logger = logging.getLogger(__name__)


class PollState(str, Enum):
    """Outcome of one refresh attempt."""

    PENDING = "PENDING"
    TARGET_REACHED = "TARGET_REACHED"
    NOT_FOUND = "NOT_FOUND"


@dataclass(frozen=True)
class PollResult:
    """Payload and state label returned by a refresh.

    ``state`` is usually a PollState but any label is accepted so that a
    refresh can report backend-specific states.
    """

    payload: Any
    state: Union[PollState, str]


RefreshFn = Callable[[], Union[PollResult, Awaitable[PollResult]]]


def _label(state: Union[PollState, str]) -> str:
    return state.value if isinstance(state, Enum) else str(state)


class StateWaiter:
    """Runs bounded refresh loops.

    Sleep and clock are injectable so tests can drive time explicitly.
    """

    def __init__(
        self,
        *,
        max_interval: float = DEFAULT_POLL_MAX_INTERVAL_SECONDS,
        unexpected_state_policy: UnexpectedStatePolicy = UnexpectedStatePolicy.PENDING,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._max_interval = max_interval
        self._policy = unexpected_state_policy
        self._sleep = sleep
        self._clock = clock

    @classmethod
    def from_config(cls, config: ProviderConfig, **kwargs: Any) -> StateWaiter:
        """Build a waiter using the provider's polling settings."""
        return cls(
            max_interval=config.poll_max_interval_seconds,
            unexpected_state_policy=config.unexpected_state_policy,
            **kwargs,
        )

    async def wait_for(
        self,
        *,
        pending: Union[PollState, str],
        target: Union[PollState, str],
        refresh: RefreshFn,
        timeout: float,
        min_interval: float,
        initial_delay: float = 0.0,
        resource: str,
    ) -> Any:
        """Poll ``refresh`` until it reports ``target``.

        Args:
            pending: State meaning "not yet, keep polling".
            target: State meaning "converged".
            refresh: Pure read returning a PollResult. May be a coroutine function.
            timeout: Upper bound in seconds, measured from the call.
            min_interval: Minimum seconds between two refreshes.
            initial_delay: Seconds to wait before the first refresh, part of ``timeout``.
            resource: Identity of the resource waited on, for diagnostics.

        Returns:
            The payload of the refresh that reached ``target``.

        Raises:
            WaitAbortedError: If refresh raised.
            WaitTimeoutError: If ``timeout`` elapsed first.
            UnexpectedStateError: On an unknown state under the ERROR policy.
        """
        start = self._clock()
        deadline = start + timeout
        interval = min_interval
        max_interval = max(self._max_interval, min_interval)
        target_label = _label(target)
        pending_label = _label(pending)
        last_state: str | None = None
        polls = 0

        if initial_delay > 0:
            await self._sleep(min(initial_delay, timeout))
            if self._clock() >= deadline:
                raise self._timeout(resource, target_label, last_state, polls, start)

        while True:
            polls += 1
            try:
                result = refresh()
                if inspect.isawaitable(result):
                    result = await result
            except Exception as e:
                logger.error(
                    "Refresh failed while waiting",
                    extra={
                        "resource": resource,
                        "target": target_label,
                        "polls": polls,
                        "error": str(e),
                    },
                )
                raise WaitAbortedError(
                    f"error while waiting for {resource} to reach {target_label}: {e}",
                    resource=resource,
                    last_state=last_state,
                ) from e

            last_state = _label(result.state)
            logger.debug(
                "Refreshed state",
                extra={"resource": resource, "state": last_state, "polls": polls},
            )

            if last_state == target_label:
                logger.info(
                    "Target state reached",
                    extra={
                        "resource": resource,
                        "state": last_state,
                        "polls": polls,
                        "elapsed_seconds": round(self._clock() - start, 2),
                    },
                )
                return result.payload

            if last_state != pending_label:
                if self._policy == UnexpectedStatePolicy.ERROR:
                    raise UnexpectedStateError(
                        f"unexpected state '{last_state}' while waiting for {resource} "
                        f"(expected '{pending_label}' or '{target_label}')",
                        resource=resource,
                        last_state=last_state,
                    )
                logger.warning(
                    "Unexpected state, treating as pending",
                    extra={
                        "resource": resource,
                        "state": last_state,
                        "pending": pending_label,
                        "target": target_label,
                    },
                )

            remaining = deadline - self._clock()
            if remaining <= 0:
                raise self._timeout(resource, target_label, last_state, polls, start)

            await self._sleep(min(interval, remaining))
            if self._clock() >= deadline:
                raise self._timeout(resource, target_label, last_state, polls, start)

            interval = min(interval * 2, max_interval)

    def _timeout(
        self,
        resource: str,
        target: str,
        last_state: str | None,
        polls: int,
        start: float,
    ) -> WaitTimeoutError:
        elapsed = self._clock() - start
        logger.error(
            "Timeout waiting for state",
            extra={
                "resource": resource,
                "target": target,
                "last_state": last_state,
                "polls": polls,
                "elapsed_seconds": round(elapsed, 2),
            },
        )
        return WaitTimeoutError(
            f"timeout while waiting for {resource} to reach {target} "
            f"(last state: {last_state}, polls: {polls}, waited {elapsed:.1f}s)",
            resource=resource,
            last_state=last_state,
            polls=polls,
        )
