"""Generic CRUD repository over one table.

``Repository[ModelT]`` is parametrized by a pydantic model describing the row
shape and the table it lives in. Domain repositories compose one (or several)
of these instead of subclassing, and build their relationship-aware reads and
validation out of the primitives below.

Every operation acquires a pooled asyncpg connection for the duration of one
statement; nothing is cached between calls. ``update`` and ``delete`` read the
row first and then write, so concurrent writers to the same id race and the
last write wins.
"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Generic, Iterator, Mapping, Optional, Type, TypeVar, Union
from uuid import uuid4

import asyncpg
import structlog
from pydantic import BaseModel

from timberledger.database import get_pool
from timberledger.exceptions import NotFoundError, PersistenceError, ValidationError

logger = structlog.get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

OPERATORS = {
    "eq": "=",
    "gte": ">=",
    "lte": "<=",
    "like": "LIKE",
    "ilike": "ILIKE",
    "in": "= ANY",
}

STORE_ERRORS = (asyncpg.PostgresError, asyncpg.DataError, asyncpg.InterfaceError, OSError)


def _to_db(value: Any) -> Any:
    """Convert model-level values into driver parameters."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_to_db(v) for v in value]
    return value


@dataclass(frozen=True)
class Condition:
    """One predicate term: ``column <operator> value``."""

    column: str
    value: Any
    operator: str = "eq"

    def __post_init__(self) -> None:
        if self.operator not in OPERATORS:
            raise ValueError(f"Unsupported operator: {self.operator}")


@dataclass
class Where:
    """Predicate for list reads.

    ``conditions`` are ANDed together; ``any_of`` terms are ORed into a single
    group that is ANDed with the rest.
    """

    conditions: list[Condition] = field(default_factory=list)
    any_of: list[Condition] = field(default_factory=list)

    @classmethod
    def equals(cls, **values: Any) -> "Where":
        """Shorthand for a conjunction of equality terms."""
        return cls([Condition(column, value) for column, value in values.items()])

    def add(self, column: str, value: Any, operator: str = "eq") -> "Where":
        """Append an ANDed term and return self."""
        self.conditions.append(Condition(column, value, operator))
        return self

    def __bool__(self) -> bool:
        return bool(self.conditions or self.any_of)

    def columns(self) -> set[str]:
        """All column names referenced by the predicate."""
        return {c.column for c in self.conditions} | {c.column for c in self.any_of}

    def to_sql(self, start: int = 1) -> tuple[str, list[Any]]:
        """Render as a ``WHERE`` clause with ``$n`` placeholders.

        Args:
            start: Number of the first placeholder

        Returns:
            Tuple of (clause, params); clause is empty for an empty predicate
        """
        params: list[Any] = []

        def render(condition: Condition) -> str:
            if condition.operator == "eq" and condition.value is None:
                return f"{condition.column} IS NULL"
            params.append(_to_db(condition.value))
            placeholder = f"${start + len(params) - 1}"
            if condition.operator == "in":
                return f"{condition.column} = ANY({placeholder})"
            return f"{condition.column} {OPERATORS[condition.operator]} {placeholder}"

        clauses = [render(c) for c in self.conditions]
        if self.any_of:
            clauses.append("(" + " OR ".join(render(c) for c in self.any_of) + ")")

        if not clauses:
            return "", params
        return " WHERE " + " AND ".join(clauses), params


class Repository(Generic[ModelT]):
    """CRUD access to one table, returning rows as ``model`` instances.

    Args:
        model: Pydantic model whose fields are the table's columns
        table: Table name
        primary_key: Primary key column, or None for association tables
        id_factory: Generates a key when ``create`` is not given one;
            None leaves key generation to the database
    """

    def __init__(
        self,
        model: Type[ModelT],
        table: str,
        primary_key: Optional[str] = "id",
        id_factory: Optional[Callable[[], Any]] = uuid4,
    ):
        self.model = model
        self.table = table
        self.primary_key = primary_key
        self.id_factory = id_factory
        self.columns = frozenset(model.model_fields)

    @property
    def entity_name(self) -> str:
        return self.model.__name__

    # =========================================================================
    # Reads
    # =========================================================================

    async def find_all(self, where: Optional[Where] = None) -> list[ModelT]:
        """Return every record matching ``where`` (all records when empty)."""
        clause, params = self._where(where)
        rows = await self._fetch(f"SELECT * FROM {self.table}{clause}", *params)
        return [self._to_model(row) for row in rows]

    async def find_by_id(self, record_id: Any) -> Optional[ModelT]:
        """Look up one record by primary key. Absent is not an error."""
        pk = self._require_primary_key()
        row = await self._fetchrow(
            f"SELECT * FROM {self.table} WHERE {pk} = $1",
            record_id,
        )
        return self._to_model(row) if row is not None else None

    async def find_one(self, where: Where) -> Optional[ModelT]:
        """Return the first record matching ``where``; order is store-defined."""
        clause, params = self._where(where)
        row = await self._fetchrow(
            f"SELECT * FROM {self.table}{clause} LIMIT 1",
            *params,
        )
        return self._to_model(row) if row is not None else None

    async def count(self, where: Optional[Where] = None) -> int:
        """Count records matching ``where``."""
        clause, params = self._where(where)
        value = await self._fetchval(f"SELECT COUNT(*) FROM {self.table}{clause}", *params)
        return int(value or 0)

    # =========================================================================
    # Writes
    # =========================================================================

    async def create(self, data: Union[Mapping[str, Any], BaseModel]) -> ModelT:
        """Insert a record and return it as stored.

        Fields set to None are omitted so column defaults apply.

        Raises:
            PersistenceError: On any store failure, including unique violations
        """
        values = {k: v for k, v in self._values(data).items() if v is not None}
        pk = self.primary_key
        if pk and self.id_factory is not None and pk not in values:
            values[pk] = self.id_factory()
        self._check_columns(values)

        columns = ", ".join(values)
        placeholders = ", ".join(f"${i}" for i in range(1, len(values) + 1))
        row = await self._fetchrow(
            f"INSERT INTO {self.table} ({columns}) VALUES ({placeholders}) RETURNING *",
            *(_to_db(v) for v in values.values()),
            action="creating",
        )
        record = self._to_model(row)

        logger.info(
            "record_created",
            table=self.table,
            record_id=str(values[pk]) if pk and pk in values else None,
        )
        return record

    async def update(self, record_id: Any, data: Union[Mapping[str, Any], BaseModel]) -> ModelT:
        """Apply a partial update and return the refreshed record.

        Only keys present in ``data`` are written; explicit None values are
        written as NULL. ``updated_at`` is refreshed when the table has one.

        Raises:
            NotFoundError: If no record has this id
            PersistenceError: On any store failure
        """
        pk = self._require_primary_key()
        existing = await self.find_by_id(record_id)
        if existing is None:
            raise NotFoundError(f"{self.entity_name} with ID {record_id} not found")

        values = self._values(data)
        values.pop(pk, None)
        if not values:
            return existing
        if "updated_at" in self.columns and "updated_at" not in values:
            values["updated_at"] = datetime.now(timezone.utc)
        self._check_columns(values)

        assignments = ", ".join(f"{column} = ${i}" for i, column in enumerate(values, start=2))
        row = await self._fetchrow(
            f"UPDATE {self.table} SET {assignments} WHERE {pk} = $1 RETURNING *",
            record_id,
            *(_to_db(v) for v in values.values()),
            action="updating",
        )
        if row is None:
            # Deleted between the read and the write
            raise NotFoundError(f"{self.entity_name} with ID {record_id} not found")

        logger.info(
            "record_updated",
            table=self.table,
            record_id=str(record_id),
            fields=sorted(values),
        )
        return self._to_model(row)

    async def delete(self, record_id: Any) -> bool:
        """Delete a record by primary key.

        Cascade or SET NULL behaviour of referencing rows is whatever the
        schema declares.

        Raises:
            NotFoundError: If no record has this id
            PersistenceError: On any store failure
        """
        pk = self._require_primary_key()
        existing = await self.find_by_id(record_id)
        if existing is None:
            raise NotFoundError(f"{self.entity_name} with ID {record_id} not found")

        await self._execute(
            f"DELETE FROM {self.table} WHERE {pk} = $1",
            record_id,
            action="deleting",
        )
        logger.info("record_deleted", table=self.table, record_id=str(record_id))
        return True

    async def delete_where(self, where: Where) -> int:
        """Delete every record matching a non-empty predicate.

        Returns:
            Number of deleted rows
        """
        if not where:
            raise ValueError("delete_where requires a non-empty predicate")
        clause, params = self._where(where)
        status = await self._execute(
            f"DELETE FROM {self.table}{clause}",
            *params,
            action="deleting",
        )
        deleted = _affected_rows(status)
        logger.info("records_deleted", table=self.table, count=deleted)
        return deleted

    # =========================================================================
    # Helpers
    # =========================================================================

    def _require_primary_key(self) -> str:
        if not self.primary_key:
            raise TypeError(f"{self.table} has no single-column primary key")
        return self.primary_key

    def _check_columns(self, columns) -> None:
        unknown = set(columns) - self.columns
        if unknown:
            raise ValueError(f"Unknown columns for {self.table}: {sorted(unknown)}")

    def _where(self, where: Optional[Where]) -> tuple[str, list[Any]]:
        if not where:
            return "", []
        self._check_columns(where.columns())
        return where.to_sql()

    def _values(self, data: Union[Mapping[str, Any], BaseModel]) -> dict[str, Any]:
        if isinstance(data, BaseModel):
            return data.model_dump(exclude_unset=True)
        return dict(data)

    def _to_model(self, row: Any) -> ModelT:
        return self.model.model_validate(dict(row))

    @contextmanager
    def _store_errors(self, action: str) -> Iterator[None]:
        """Translate driver failures into PersistenceError."""
        try:
            yield
        except asyncpg.UniqueViolationError as e:
            logger.warning(
                "store_unique_violation",
                table=self.table,
                action=action,
                error=str(e),
            )
            raise PersistenceError(
                f"Error {action} {self.entity_name} record: {e}",
                cause=e,
                unique_violation=True,
            ) from e
        except STORE_ERRORS as e:
            logger.error(
                "store_operation_failed",
                table=self.table,
                action=action,
                error=str(e),
            )
            raise PersistenceError(
                f"Error {action} {self.entity_name} record: {e}",
                cause=e,
            ) from e

    async def _fetch(self, sql: str, *args: Any, action: str = "finding") -> list:
        with self._store_errors(action):
            pool = await get_pool()
            async with pool.acquire() as conn:
                return await conn.fetch(sql, *args)

    async def _fetchrow(self, sql: str, *args: Any, action: str = "finding") -> Any:
        with self._store_errors(action):
            pool = await get_pool()
            async with pool.acquire() as conn:
                return await conn.fetchrow(sql, *args)

    async def _fetchval(self, sql: str, *args: Any, action: str = "finding") -> Any:
        with self._store_errors(action):
            pool = await get_pool()
            async with pool.acquire() as conn:
                return await conn.fetchval(sql, *args)

    async def _execute(self, sql: str, *args: Any, action: str) -> str:
        with self._store_errors(action):
            pool = await get_pool()
            async with pool.acquire() as conn:
                return await conn.execute(sql, *args)


def _affected_rows(status: Any) -> int:
    """Parse the row count out of an asyncpg command tag such as 'DELETE 3'."""
    try:
        return int(str(status).rsplit(" ", 1)[-1])
    except ValueError:
        return 0


def contains(text: str) -> str:
    """LIKE pattern matching ``text`` anywhere, with wildcards escaped."""
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


EnumT = TypeVar("EnumT", bound=Enum)


def coerce_enum(enum_cls: Type[EnumT], value: Union[str, EnumT], label: str) -> EnumT:
    """Parse ``value`` into ``enum_cls`` or raise ValidationError."""
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"Invalid {label} '{value}'. Allowed: {allowed}")
