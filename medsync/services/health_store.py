"""
Boundary to the external health store.

Key patterns:
- Protocol-based dependency injection for the store collaborator
- Generic Result type for expected I/O failures
- Adapter that lifts plain callables into the protocol
"""

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any, Generic, Protocol, TypeVar

import structlog

from medsync.domain.models import MedicationDoseRecord

# Configure structured logging (production-ready observability)
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer(),
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)

ValueT = TypeVar("ValueT")
ErrorT = TypeVar("ErrorT", bound=BaseException)


class Result(Generic[ValueT, ErrorT]):
    """
    Explicit error handling without exceptions for expected failures.

    Used where failure is part of normal operation (the store is unreachable,
    authorization was revoked), not for programming errors.
    """

    def __init__(self, value: ValueT | None = None, error: ErrorT | None = None) -> None:
        if value is not None and error is not None:
            raise ValueError("Result cannot have both value and error")
        if value is None and error is None:
            raise ValueError("Result must have either value or error")
        self._value: ValueT | None = value
        self._error: ErrorT | None = error

    @classmethod
    def ok(cls, value: ValueT) -> "Result[ValueT, ErrorT]":
        return cls(value=value)

    @classmethod
    def err(cls, error: ErrorT) -> "Result[ValueT, ErrorT]":
        return cls(error=error)

    def is_ok(self) -> bool:
        return self._error is None

    def is_err(self) -> bool:
        return self._error is not None

    def unwrap(self) -> ValueT:
        if self._error is not None:
            raise self._error
        return self._value  # type: ignore

    def unwrap_or(self, default: ValueT) -> ValueT:
        return self._value if self._error is None else default  # type: ignore

    def unwrap_err(self) -> ErrorT:
        if self._error is None:
            raise ValueError("Called unwrap_err() on an Ok value")
        return self._error


class HealthStore(Protocol):
    """
    Read/write capability of the device health store.

    Implementations own authorization, querying and sample serialization;
    the sync service only sees the resulting records.
    """

    store_name: str

    async def fetch_medication_records(self) -> Result[list[MedicationDoseRecord], Exception]:
        """
        Read the medication records currently held by the store.

        Returns:
            Result[list[MedicationDoseRecord], Exception]: the records or the failure.
        """
        ...

    async def write_medication_dose(self, name: str, dosage: str, date_taken: datetime) -> bool:
        """Record one administration. The return value is the only success signal."""
        ...


FetchRecords = Callable[[], Any]
WriteRecord = Callable[[str, str, datetime], Any]


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class CallableHealthStore:
    """
    Health store assembled from two plain callables.

    Either callable may be sync or async. The fetch callable may return a
    list of records or a ``Result``; an exception it raises becomes an error
    ``Result``.
    """

    def __init__(
        self,
        fetch_records: FetchRecords,
        write_record: WriteRecord,
        store_name: str = "external-store",
    ) -> None:
        self.store_name = store_name
        self._fetch_records = fetch_records
        self._write_record = write_record
        self.logger = logger.bind(store=store_name)

    async def fetch_medication_records(self) -> Result[list[MedicationDoseRecord], Exception]:
        try:
            fetched = await _maybe_await(self._fetch_records())
        except Exception as e:
            return Result.err(e)

        if isinstance(fetched, Result):
            return fetched
        return Result.ok(list(fetched))

    async def write_medication_dose(self, name: str, dosage: str, date_taken: datetime) -> bool:
        written = await _maybe_await(self._write_record(name, dosage, date_taken))
        if isinstance(written, Result):
            return written.is_ok() and bool(written.unwrap())
        return bool(written)


async def call_with_timeout(awaitable: Awaitable[Any], timeout_seconds: float | None) -> Any:
    """Await with an optional timeout; ``None`` waits indefinitely."""
    if timeout_seconds is None:
        return await awaitable
    return await asyncio.wait_for(awaitable, timeout=timeout_seconds)
