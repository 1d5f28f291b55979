"""
Shared plumbing for the store classes.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.exc import (DisconnectionError, InterfaceError,
                            OperationalError)
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from headcount.core.exceptions import TransientError

logger = logging.getLogger(__name__)

# Failures that say nothing about the data, only about reaching the store.
TRANSIENT_ERRORS = (
    OperationalError,
    InterfaceError,
    DisconnectionError,
    PoolTimeoutError,
    OSError,
)


@asynccontextmanager
async def storage_errors(operation: str) -> AsyncIterator[None]:
    """Re-raise connectivity failures inside the block as :class:`TransientError`."""
    try:
        yield
    except TRANSIENT_ERRORS as exc:
        logger.warning("Store unavailable during %s: %s", operation, exc.__class__.__name__)
        raise TransientError(f"Store unavailable during {operation}") from exc
