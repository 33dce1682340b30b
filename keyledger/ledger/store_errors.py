from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from keyledger.ledger.errors import TransientStoreError

logger = structlog.get_logger(__name__)

TRANSIENT_STORE_EXCEPTIONS: tuple[type[BaseException], ...] = (
    OperationalError,
    InterfaceError,
    PoolTimeoutError,
    TimeoutError,
    ConnectionError,
)


@asynccontextmanager
async def translate_store_errors(operation: str) -> AsyncIterator[None]:
    """Re-raises store outages as TransientStoreError without their driver message."""
    try:
        yield
    except TRANSIENT_STORE_EXCEPTIONS as exc:
        logger.warning(
            "ledger_store_unavailable",
            operation=operation,
            error_type=type(exc).__name__,
            error=str(exc),
        )
        raise TransientStoreError(operation) from exc
