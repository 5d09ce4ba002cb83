from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional, Sequence, TypeVar

import httpx

from .errors import RateLimitedError, ServiceError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Strategy = tuple[str, Callable[[], Awaitable[Optional[T]]]]

# Errors a single strategy may raise without aborting the chain.
STRATEGY_ERRORS = (
    ServiceError,
    httpx.HTTPError,
    ValueError,
    KeyError,
    TypeError,
    AttributeError,
    IndexError,
    OSError,
)


async def first_available(
    strategies: Sequence[Strategy[T]],
    *,
    label: str,
    accept: Callable[[T], bool] | None = None,
) -> T | None:
    """Run named strategies in order and return the first usable result.

    A strategy that raises, returns None, or fails ``accept`` is skipped.
    ``RateLimitedError`` is the only error that escapes the chain.
    """
    for name, strategy in strategies:
        try:
            result = await strategy()
        except RateLimitedError:
            raise
        except STRATEGY_ERRORS as error:
            logger.info("[%s] %s failed: %s", label, name, error)
            continue

        if result is None:
            logger.debug("[%s] %s returned nothing", label, name)
            continue
        if accept is not None and not accept(result):
            logger.debug("[%s] %s result rejected", label, name)
            continue

        logger.info("[%s] %s succeeded", label, name)
        return result

    return None
