"""Main entry point for one-shot repository reconciliation.

Reads the provider configuration from the environment and applies the
repository spec named by SPEC_FILE. Exit codes:

    0  converged
    1  configuration, spec or remote failure
    2  timed out waiting for the backend (remote state may be partial)
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import sys
from datetime import UTC, datetime
from pathlib import Path

from .config import ConfigurationError, ProviderConfig
from .errors import ProvisionerError, WaitTimeoutError
from .lifecycle import ResourceController
from .reconciler import ResourceReconciler
from .session import ProviderSession
from .spec_loader import SpecLoadError, load_repository_spec

# LogRecord attributes that are not structured context
_RESERVED_RECORD_KEYS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "taskName",
        "message",
    }
)


class JsonFormatter(logging.Formatter):
    """Format logs as JSON for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_RECORD_KEYS:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(level: int = logging.INFO) -> None:
    """Configure structured logging with JSON output."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(level)

    # Reduce noise from the HTTP pipeline
    logging.getLogger("azure").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


async def apply_spec_file(config: ProviderConfig, spec_path: Path) -> int:
    """Apply one repository spec file and return an exit code."""
    logger = logging.getLogger(__name__)

    try:
        spec = load_repository_spec(spec_path)
    except SpecLoadError as e:
        logger.error("Spec loading failed", extra={"error": str(e), "spec_path": str(spec_path)})
        return 1

    with ProviderSession.open(config) as session:
        reconciler = ResourceReconciler(ResourceController.for_repositories(session))
        try:
            await reconciler.apply(spec)
        except WaitTimeoutError as e:
            logger.error(
                "Backend did not converge in time",
                extra={"resource": e.resource, "last_state": e.last_state, "polls": e.polls},
            )
            return 2
        except ProvisionerError as e:
            logger.error(
                "Apply failed",
                extra={"error": str(e), "error_type": type(e).__name__, "resource": e.resource},
            )
            return 1

    return 0


async def main() -> int:
    """Run one reconciliation.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    setup_logging()
    logger = logging.getLogger(__name__)

    try:
        config = ProviderConfig.from_env()
    except ConfigurationError as e:
        logger.error("Configuration error", extra={"error": str(e)})
        return 1

    spec_file = os.environ.get("SPEC_FILE")
    if not spec_file:
        logger.error("SPEC_FILE is required")
        return 1

    logger.info(
        "Starting ncloud provisioner",
        extra={"region": config.region, "flavor": config.flavor.value, "spec_path": spec_file},
    )
    return await apply_spec_file(config, Path(spec_file))


def run() -> None:
    """Entry point for the one-shot runner."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
