"""Correlation-id tracking for asynchronous Verified ID requests.

A request is created when a service asks the Request Service for an issuance
or presentation, and updated later when the platform calls back with the same
correlation id in its ``state`` field. Records live in memory only.
"""

from __future__ import annotations

import copy
import logging
import threading
import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Protocol

logger = logging.getLogger(__name__)

REQUEST_CREATED = "request_created"

# Issuance callback codes
REQUEST_RETRIEVED = "request_retrieved"
ISSUANCE_SUCCESSFUL = "issuance_successful"
ISSUANCE_ERROR = "issuance_error"

# Presentation callback codes
PRESENTATION_VERIFIED = "presentation_verified"
PRESENTATION_ERROR = "presentation_error"


class RequestKind(str, Enum):
    """Workflow type of a tracked request."""

    ISSUANCE = "issuance"
    VERIFICATION = "verification"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class TrackedRequest:
    """One outstanding or completed issuance/verification attempt."""

    id: str
    kind: RequestKind
    created_at: datetime
    status: str = REQUEST_CREATED
    metadata: dict[str, Any] = field(default_factory=dict)
    updated_at: datetime | None = None
    result: dict[str, Any] | None = None
    error: dict[str, Any] | None = None


class RequestStore(Protocol):
    """Storage contract for tracked requests."""

    def create(self, kind: RequestKind | str, metadata: Mapping[str, Any] | None = None) -> str:
        ...

    def get(self, request_id: str) -> TrackedRequest | None:
        ...

    def update(
        self,
        request_id: str,
        status: str,
        result: Mapping[str, Any] | None = None,
        error: Mapping[str, Any] | None = None,
    ) -> bool:
        ...

    def discard(self, request_id: str) -> bool:
        ...


class InMemoryRequestStore:
    """Process-local request store guarded by a single mutex.

    Records are immutable; every write swaps in a new record under the lock,
    so concurrent callbacks for the same id resolve as last-write-wins and a
    reader never sees a half-applied update. ``get`` hands out detached
    copies, so callers cannot reach the stored mappings.

    Args:
        max_age: Optional age after which records are purged. ``None`` keeps
            records until the process exits.
        clock: Source of timezone-aware "now" timestamps.
        id_factory: Generator for correlation ids.
    """

    def __init__(
        self,
        max_age: timedelta | None = None,
        clock: Callable[[], datetime] = utc_now,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ) -> None:
        self._records: dict[str, TrackedRequest] = {}
        self._lock = threading.Lock()
        self._max_age = max_age
        self._clock = clock
        self._id_factory = id_factory

    def create(self, kind: RequestKind | str, metadata: Mapping[str, Any] | None = None) -> str:
        request_kind = RequestKind(kind)
        now = self._clock()
        record_metadata = copy.deepcopy(dict(metadata or {}))
        with self._lock:
            self._purge_expired(now)
            request_id = self._id_factory()
            while request_id in self._records:
                request_id = self._id_factory()
            self._records[request_id] = TrackedRequest(
                id=request_id,
                kind=request_kind,
                created_at=now,
                metadata=record_metadata,
            )
        logger.debug("Tracking %s request %s", request_kind.value, request_id)
        return request_id

    def get(self, request_id: str) -> TrackedRequest | None:
        with self._lock:
            record = self._records.get(request_id)
            if record is not None and self._is_expired(record, self._clock()):
                del self._records[request_id]
                return None
        return None if record is None else _detached(record)

    def update(
        self,
        request_id: str,
        status: str,
        result: Mapping[str, Any] | None = None,
        error: Mapping[str, Any] | None = None,
    ) -> bool:
        """Overwrite the status of a known request.

        No transition rules are applied: any status may follow any other, and
        repeated callbacks simply rewrite the record. A ``result`` persists
        until replaced; ``error`` always reflects the latest update.

        Returns:
            ``True`` if the request exists, ``False`` if the id is unknown.
        """
        with self._lock:
            record = self._records.get(request_id)
            now = self._clock()
            if record is None or self._is_expired(record, now):
                return False
            changes: dict[str, Any] = {"status": status, "updated_at": now}
            if result is not None:
                changes["result"] = copy.deepcopy(dict(result))
            changes["error"] = None if error is None else copy.deepcopy(dict(error))
            self._records[request_id] = replace(record, **changes)
        return True

    def discard(self, request_id: str) -> bool:
        with self._lock:
            return self._records.pop(request_id, None) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def _is_expired(self, record: TrackedRequest, now: datetime) -> bool:
        return self._max_age is not None and now - record.created_at > self._max_age

    def _purge_expired(self, now: datetime) -> None:
        if self._max_age is None:
            return
        expired = [key for key, record in self._records.items() if self._is_expired(record, now)]
        for key in expired:
            del self._records[key]
        if expired:
            logger.info("Purged %d expired tracked requests", len(expired))


def _detached(record: TrackedRequest) -> TrackedRequest:
    """Copy of ``record`` whose mappings do not alias the stored ones."""
    return replace(
        record,
        metadata=copy.deepcopy(record.metadata),
        result=copy.deepcopy(record.result),
        error=copy.deepcopy(record.error),
    )


__all__ = [
    "ISSUANCE_ERROR",
    "ISSUANCE_SUCCESSFUL",
    "PRESENTATION_ERROR",
    "PRESENTATION_VERIFIED",
    "REQUEST_CREATED",
    "REQUEST_RETRIEVED",
    "InMemoryRequestStore",
    "RequestKind",
    "RequestStore",
    "TrackedRequest",
    "utc_now",
]
