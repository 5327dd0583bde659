"""Ordered fallback chains: try providers in turn, first success wins."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import TypeVar

from verified_id_common.exceptions import FallbackExhaustedError, VerifiedIdError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Provider = Callable[[], Awaitable[T]]


async def first_success(providers: Iterable[Provider[T]], *, label: str) -> T:
    """Return the result of the first provider that does not fail.

    Only :class:`VerifiedIdError` failures are treated as recoverable; anything
    else propagates immediately.

    Args:
        providers: Zero-argument coroutine functions, in priority order
        label: Short description used in log lines and the final error

    Raises:
        FallbackExhaustedError: If every provider failed
    """
    last_error: VerifiedIdError | None = None
    for index, provider in enumerate(providers):
        try:
            return await provider()
        except VerifiedIdError as exc:
            logger.debug("%s provider %d failed: %s", label, index, exc.message)
            last_error = exc
    raise FallbackExhaustedError(label) from last_error


__all__ = ["Provider", "first_success"]
