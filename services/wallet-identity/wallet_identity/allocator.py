"""Account number allocation backed by a single shared counter."""

from __future__ import annotations

import logging
from threading import Lock
from typing import Protocol

from psycopg import Error as PsycopgError
from psycopg.rows import tuple_row
from psycopg_pool import ConnectionPool

from .domain.errors import AllocationFailure

logger = logging.getLogger(__name__)


class AccountNumberAllocator(Protocol):
    """Issues strictly increasing account numbers that are never handed out twice.

    Gaps are tolerated when a creation fails after drawing its number;
    duplicates never are.
    """

    def next(self) -> int:
        ...


def _validate_sequence(floor: int, step: int) -> None:
    if floor < 0:
        raise ValueError("account number floor must not be negative")
    if step < 1:
        raise ValueError("account number step must be at least 1")


class InMemoryAccountNumberAllocator:
    """Thread-safe single-process counter for development and tests."""

    def __init__(self, *, floor: int = 1001, step: int = 1) -> None:
        _validate_sequence(floor, step)
        self._next = floor
        self._step = step
        self._lock = Lock()

    def next(self) -> int:
        with self._lock:
            value = self._next
            self._next += self._step
            return value


class PostgresAccountNumberAllocator:
    """Durable counter row in ``identity_counters`` advanced with one atomic upsert."""

    def __init__(
        self,
        pool: ConnectionPool,
        *,
        floor: int = 1001,
        step: int = 1,
        model: str = "Customer",
        field: str = "account_number",
    ) -> None:
        """Store the pool and the (model, field) key identifying the counter row."""
        _validate_sequence(floor, step)
        self._pool = pool
        self._floor = floor
        self._step = step
        self._model = model
        self._field = field

    def next(self) -> int:
        """Advance the counter in its own committed transaction and return the new value."""
        try:
            with self._pool.connection() as conn:
                with conn.cursor(row_factory=tuple_row) as cur:
                    cur.execute(
                        """
                        INSERT INTO identity_counters (model, field, count)
                        VALUES (%s, %s, %s)
                        ON CONFLICT (model, field)
                        DO UPDATE SET count = identity_counters.count + %s
                        RETURNING count
                        """,
                        (self._model, self._field, self._floor, self._step),
                    )
                    row = cur.fetchone()
                conn.commit()
        except PsycopgError as exc:
            logger.error("account number allocation failed: %s", exc.__class__.__name__)
            raise AllocationFailure() from exc
        if row is None:
            raise AllocationFailure()
        return int(row[0])
