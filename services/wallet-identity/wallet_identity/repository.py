"""Database repository for wallet customer identities."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from psycopg import errors as pg_errors
from psycopg.rows import tuple_row
from psycopg_pool import ConnectionPool

from .domain.customer import Customer, Role
from .domain.errors import DuplicateAccountNumber, DuplicateEmail, ValidationError

logger = logging.getLogger(__name__)

_COLUMNS = (
    "customer_id, account_number, email, password_digest, created_at, updated_at, name, role, balance"
)

# Columns a caller may change after creation; id and account number are immutable.
_UPDATABLE_COLUMNS = frozenset({"name", "email", "role", "balance", "password_digest"})


class CustomerRepository:
    """Postgres-backed customer persistence relying on table constraints for uniqueness."""

    def __init__(self, pool: ConnectionPool) -> None:
        """Store the connection pool used for all database interactions."""
        self._pool = pool

    def insert_customer(
        self,
        *,
        account_number: int,
        email: str,
        password_digest: str,
        name: str | None,
        role: Role,
        balance: Decimal = Decimal("0"),
    ) -> Customer:
        """Insert a customer row; unique violations surface as domain errors."""
        customer_id = str(uuid.uuid4())
        now = datetime.now(timezone.utc)
        try:
            with self._pool.connection() as conn:
                with conn.cursor(row_factory=tuple_row) as cur:
                    cur.execute(
                        f"""
                        INSERT INTO customers ({_COLUMNS})
                        VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
                        RETURNING {_COLUMNS}
                        """,
                        (
                            customer_id,
                            account_number,
                            email,
                            password_digest,
                            now,
                            now,
                            name,
                            role.value,
                            balance,
                        ),
                    )
                    record = cur.fetchone()
                conn.commit()
        except pg_errors.UniqueViolation as exc:
            raise self._duplicate_error(exc) from exc
        except pg_errors.CheckViolation as exc:
            raise ValidationError() from exc
        return self._map_record(record)

    def get_customer(self, customer_id: str) -> Customer | None:
        """Fetch a customer by id or return ``None``."""
        try:
            uuid.UUID(customer_id)
        except (TypeError, ValueError):
            return None
        return self._fetch_one("customer_id = %s", (customer_id,))

    def get_by_email(self, email: str) -> Customer | None:
        return self._fetch_one("email = %s", (email,))

    def get_by_account_number(self, account_number: int) -> Customer | None:
        return self._fetch_one("account_number = %s", (account_number,))

    def update_customer(self, customer_id: str, changes: dict[str, Any]) -> Customer | None:
        """Apply ``changes`` to one row and return the updated customer, or ``None`` if absent."""
        unknown = set(changes) - _UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"columns not updatable: {', '.join(sorted(unknown))}")
        if not changes:
            return self.get_customer(customer_id)

        assignments = [f"{column} = %s" for column in changes]
        params: list[Any] = [
            value.value if isinstance(value, Role) else value for value in changes.values()
        ]
        assignments.append("updated_at = %s")
        params.append(datetime.now(timezone.utc))
        params.append(customer_id)

        try:
            with self._pool.connection() as conn:
                with conn.cursor(row_factory=tuple_row) as cur:
                    cur.execute(
                        f"""
                        UPDATE customers
                        SET {", ".join(assignments)}
                        WHERE customer_id = %s
                        RETURNING {_COLUMNS}
                        """,
                        params,
                    )
                    row = cur.fetchone()
                conn.commit()
        except pg_errors.UniqueViolation as exc:
            raise self._duplicate_error(exc) from exc
        except pg_errors.CheckViolation as exc:
            raise ValidationError() from exc
        if not row:
            return None
        return self._map_record(row)

    def list_customers(
        self,
        *,
        name: str | None = None,
        email: str | None = None,
        role: Role | None = None,
        limit: int = 30,
        offset: int = 0,
    ) -> list[Customer]:
        """Return customers matching the equality filters, ordered by account number."""
        clauses: list[str] = []
        params: list[Any] = []

        if name is not None:
            clauses.append("name = %s")
            params.append(name)
        if email is not None:
            clauses.append("email = %s")
            params.append(email)
        if role is not None:
            clauses.append("role = %s")
            params.append(role.value)

        where_sql = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        query = f"""
            SELECT {_COLUMNS}
            FROM customers
            {where_sql}
            ORDER BY account_number ASC
            LIMIT %s OFFSET %s
        """
        params.extend([limit, offset])

        with self._pool.connection() as conn:
            with conn.cursor(row_factory=tuple_row) as cur:
                cur.execute(query, params)
                return [self._map_record(row) for row in cur.fetchall()]

    def _fetch_one(self, where_sql: str, params: tuple[Any, ...]) -> Customer | None:
        with self._pool.connection() as conn:
            with conn.cursor(row_factory=tuple_row) as cur:
                cur.execute(f"SELECT {_COLUMNS} FROM customers WHERE {where_sql}", params)
                row = cur.fetchone()
                if not row:
                    return None
        return self._map_record(row)

    def _duplicate_error(self, exc: pg_errors.UniqueViolation) -> Exception:
        constraint = exc.diag.constraint_name or ""
        logger.info("unique constraint violated: %s", constraint)
        if "account_number" in constraint:
            return DuplicateAccountNumber()
        return DuplicateEmail()

    def _map_record(self, row: tuple) -> Customer:
        """Convert a raw database tuple into the domain ``Customer`` dataclass."""
        return Customer(
            customer_id=str(row[0]),
            account_number=row[1],
            email=row[2],
            password_digest=row[3],
            created_at=row[4],
            updated_at=row[5],
            name=row[6],
            role=Role(row[7]),
            balance=row[8],
        )
