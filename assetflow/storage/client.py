"""Generic data access client.

Every accessor in ``assetflow.services`` goes through :class:`DataClient`,
which maps ``query(table, operation, options)`` onto SQLAlchemy Core
``select``/``insert``/``update``/``delete`` statements and returns a uniform
:class:`QueryResult`. Writes fan out :class:`ChangeEvent` objects to
subscribers registered with :meth:`DataClient.subscribe`.
"""

import inspect
import logging
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import MetaData, Table, delete, func, insert, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine

from assetflow.errors import AssetflowError, PassthroughDatabaseError
from assetflow.storage import models  # noqa: F401
from assetflow.storage.database import Base

log = logging.getLogger(__name__)

OPERATIONS = ("select", "insert", "update", "delete")

# Page size applied when an offset is given without a limit
DEFAULT_PAGE_SIZE = 10

_OPERATORS: Dict[str, Callable[[Any, Any], Any]] = {
    "eq": lambda column, value: column == value,
    "neq": lambda column, value: column != value,
    "gt": lambda column, value: column > value,
    "gte": lambda column, value: column >= value,
    "lt": lambda column, value: column < value,
    "lte": lambda column, value: column <= value,
    "like": lambda column, value: column.like(value),
    "ilike": lambda column, value: column.ilike(value),
    "in": lambda column, value: column.in_(list(value)),
    "is": lambda column, value: column.is_(value),
}


class Filter(BaseModel):
    """Single ``column <operator> value`` condition."""

    column: str
    operator: str = "eq"
    value: Any = None


class OrderBy(BaseModel):
    """Ordering specification."""

    column: str
    ascending: bool = True


class QueryOptions(BaseModel):
    """Options accepted by :meth:`DataClient.query`."""

    columns: Optional[Union[str, List[str]]] = None
    filters: List[Filter] = Field(default_factory=list)
    or_filters: List[Filter] = Field(default_factory=list)
    order_by: Optional[OrderBy] = None
    limit: Optional[int] = Field(default=None, ge=0)
    offset: Optional[int] = Field(default=None, ge=0)
    data: Optional[Union[Dict[str, Any], List[Dict[str, Any]]]] = None


class QueryResult(BaseModel):
    """Uniform ``{data, error}`` result."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    data: Any = None
    error: Optional[str] = None
    error_code: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def first(self) -> "QueryResult":
        """Collapse a list result into its first row (or ``None``)."""
        if not self.ok:
            return self
        rows = self.data or []
        return QueryResult(data=rows[0] if rows else None)

    def unwrap(self) -> Any:
        """Return data, raising PassthroughDatabaseError on error."""
        if not self.ok:
            raise PassthroughDatabaseError(self.error, {"error_code": self.error_code})
        return self.data

    @classmethod
    def failure(cls, exc: AssetflowError) -> "QueryResult":
        return cls(data=None, error=exc.message, error_code=exc.code)


class ChangeType(str, Enum):
    """Kind of row change."""

    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class ChangeEvent(BaseModel):
    """Row change delivered to subscribers."""

    table: str
    event_type: ChangeType
    new: Optional[Dict[str, Any]] = None
    old: Optional[Dict[str, Any]] = None
    commit_timestamp: datetime = Field(default_factory=datetime.utcnow)


ChangeCallback = Callable[[ChangeEvent], Any]


class Subscription:
    """Handle returned by :meth:`DataClient.subscribe`."""

    def __init__(
        self,
        table: str,
        callback: ChangeCallback,
        filter: Optional[Dict[str, Any]] = None,
    ):
        self.id = str(uuid4())
        self.table = table
        self.callback = callback
        self.filter = filter or {}
        self.active = True

    def matches(self, event: ChangeEvent) -> bool:
        """Check the equality filter against the new or old row."""
        if not self.filter:
            return True
        for row in (event.new, event.old):
            if row and all(row.get(key) == value for key, value in self.filter.items()):
                return True
        return False

    def __repr__(self) -> str:
        return f"<Subscription(id={self.id}, table={self.table}, filter={self.filter})>"


class BatchResult(BaseModel):
    """Outcome of :meth:`DataClient.batch`."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    results: List[Any] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors


def describe_database_error(exc: Exception, operation: str) -> str:
    """Translate a driver/SQLAlchemy failure into a human readable message."""
    if isinstance(exc, IntegrityError):
        text = str(exc.orig).lower()
        if "unique" in text or "duplicate" in text:
            return "Duplicate entry - record already exists"
        if "foreign key" in text:
            return "Referenced record not found"
    orig = getattr(exc, "orig", None)
    if getattr(orig, "sqlstate", None) == "42501" or getattr(orig, "pgcode", None) == "42501":
        return "Access denied - insufficient permissions"
    if isinstance(exc, KeyError):
        return f"Unknown column in {operation}: {exc.args[0]}"
    message = str(exc) or exc.__class__.__name__
    return message.splitlines()[0]


class DataClient:
    """Executes table operations against the configured database."""

    def __init__(self, engine: AsyncEngine, metadata: Optional[MetaData] = None):
        """Initialize client with an async engine."""
        self.engine = engine
        self.metadata = metadata if metadata is not None else Base.metadata
        self._subscriptions: Dict[str, List[Subscription]] = {}

    def get_table(self, name: str) -> Table:
        table = self.metadata.tables.get(name)
        if table is None:
            raise ValueError(f"Unknown table: {name}")
        return table

    async def query(
        self,
        table: str,
        operation: str = "select",
        options: Optional[Union[QueryOptions, Dict[str, Any]]] = None,
    ) -> QueryResult:
        """Run one operation on one table.

        Args:
            table: Table name
            operation: One of select, insert, update, delete
            options: QueryOptions or an equivalent dictionary

        Returns:
            QueryResult whose data is the list of selected/affected rows
        """
        events: List[ChangeEvent] = []
        try:
            if options is None:
                opts = QueryOptions()
            elif isinstance(options, QueryOptions):
                opts = options
            else:
                opts = QueryOptions.model_validate(options)

            if operation not in OPERATIONS:
                raise ValueError(f"Unsupported operation: {operation}")

            tbl = self.get_table(table)
            async with self.engine.begin() as conn:
                if operation == "select":
                    result = await conn.execute(self._build_select(tbl, opts))
                    rows = [dict(row._mapping) for row in result]
                elif operation == "insert":
                    rows = []
                    for values in self._rows_from(opts):
                        result = await conn.execute(insert(tbl).values(values).returning(*tbl.c))
                        rows.extend(dict(row._mapping) for row in result)
                    events = [ChangeEvent(table=table, event_type=ChangeType.INSERT, new=row) for row in rows]
                elif operation == "update":
                    if not opts.data or not isinstance(opts.data, dict):
                        raise ValueError("Update requires a data mapping")
                    stmt = update(tbl).where(*self._build_where(tbl, opts, operation)).values(opts.data)
                    result = await conn.execute(stmt.returning(*tbl.c))
                    rows = [dict(row._mapping) for row in result]
                    events = [ChangeEvent(table=table, event_type=ChangeType.UPDATE, new=row) for row in rows]
                else:
                    stmt = delete(tbl).where(*self._build_where(tbl, opts, operation))
                    result = await conn.execute(stmt.returning(*tbl.c))
                    rows = [dict(row._mapping) for row in result]
                    events = [ChangeEvent(table=table, event_type=ChangeType.DELETE, old=row) for row in rows]
        except Exception as e:
            message = describe_database_error(e, f"{operation} operation on {table}")
            log.error(f"Database query error for {table} ({operation}): {message}")
            return QueryResult(data=None, error=message, error_code=PassthroughDatabaseError.code)

        if events:
            await self._publish(events)
        return QueryResult(data=rows)

    async def count(
        self,
        table: str,
        filters: Optional[Iterable[Union[Filter, Dict[str, Any]]]] = None,
    ) -> QueryResult:
        """Count rows matching the given filters."""
        try:
            opts = QueryOptions(filters=list(filters or []))
            tbl = self.get_table(table)
            stmt = select(func.count()).select_from(tbl)
            clauses = [self._build_clause(tbl, f) for f in opts.filters]
            if clauses:
                stmt = stmt.where(*clauses)
            async with self.engine.connect() as conn:
                value = (await conn.execute(stmt)).scalar_one()
        except Exception as e:
            message = describe_database_error(e, f"count on {table}")
            log.error(f"Database count error for {table}: {message}")
            return QueryResult(data=None, error=message, error_code=PassthroughDatabaseError.code)
        return QueryResult(data=int(value))

    async def batch(self, operations: Iterable[Callable[[], Awaitable[Any]]]) -> BatchResult:
        """Run operations sequentially, collecting results and raised errors."""
        outcome = BatchResult()
        for operation in operations:
            try:
                outcome.results.append(await operation())
            except Exception as e:
                log.error(f"Batch operation failed: {e}")
                outcome.errors.append(str(e))
        return outcome

    async def health_check(self) -> Dict[str, Any]:
        """Check that the database answers a trivial query."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(select(1))
        except Exception as e:
            return {"connected": False, "error": str(e)}
        return {"connected": True, "error": None}

    def subscribe(
        self,
        table: str,
        callback: ChangeCallback,
        filter: Optional[Dict[str, Any]] = None,
    ) -> Optional[Subscription]:
        """Register a callback for insert/update/delete events on a table."""
        if table not in self.metadata.tables:
            log.error(f"Real-time subscription error: unknown table {table}")
            return None
        subscription = Subscription(table, callback, filter)
        self._subscriptions.setdefault(table, []).append(subscription)
        log.debug(f"Subscribed {subscription!r}")
        return subscription

    def unsubscribe(self, subscription: Optional[Subscription]) -> bool:
        if subscription is None:
            return False
        subscriptions = self._subscriptions.get(subscription.table, [])
        if subscription not in subscriptions:
            return False
        subscriptions.remove(subscription)
        subscription.active = False
        return True

    def unsubscribe_all(self) -> None:
        for subscriptions in self._subscriptions.values():
            for subscription in subscriptions:
                subscription.active = False
        self._subscriptions.clear()

    def subscriptions(self, table: Optional[str] = None) -> List[Subscription]:
        if table is not None:
            return list(self._subscriptions.get(table, []))
        return [s for subs in self._subscriptions.values() for s in subs]

    async def _publish(self, events: List[ChangeEvent]) -> None:
        for event in events:
            for subscription in list(self._subscriptions.get(event.table, [])):
                if not subscription.matches(event):
                    continue
                try:
                    result = subscription.callback(event)
                    if inspect.isawaitable(result):
                        await result
                except Exception as e:
                    log.error(f"Subscriber for {event.table} failed on {event.event_type.value}: {e}")

    def _rows_from(self, opts: QueryOptions) -> List[Dict[str, Any]]:
        if not opts.data:
            raise ValueError("Insert requires data")
        if isinstance(opts.data, dict):
            return [opts.data]
        return list(opts.data)

    def _build_select(self, tbl: Table, opts: QueryOptions):
        stmt = select(*self._columns(tbl, opts.columns))
        clauses = self._build_where(tbl, opts, "select", required=False)
        if clauses:
            stmt = stmt.where(*clauses)
        if opts.order_by:
            column = tbl.c[opts.order_by.column]
            stmt = stmt.order_by(column.asc() if opts.order_by.ascending else column.desc())
        if opts.limit is not None:
            stmt = stmt.limit(opts.limit)
        if opts.offset:
            stmt = stmt.offset(opts.offset)
            if opts.limit is None:
                stmt = stmt.limit(DEFAULT_PAGE_SIZE)
        return stmt

    def _build_where(self, tbl: Table, opts: QueryOptions, operation: str, required: bool = True) -> list:
        clauses = [self._build_clause(tbl, f) for f in opts.filters]
        if opts.or_filters:
            clauses.append(or_(*[self._build_clause(tbl, f) for f in opts.or_filters]))
        if required and not clauses:
            # Refuse table-wide writes
            raise ValueError(f"{operation.capitalize()} requires at least one filter")
        return clauses

    @staticmethod
    def _build_clause(tbl: Table, f: Filter):
        builder = _OPERATORS.get(f.operator)
        if builder is None:
            raise ValueError(f"Unsupported filter operator: {f.operator}")
        return builder(tbl.c[f.column], f.value)

    @staticmethod
    def _columns(tbl: Table, columns: Optional[Union[str, List[str]]]) -> list:
        if not columns:
            return list(tbl.c)
        names = columns.split(",") if isinstance(columns, str) else columns
        names = [name.strip() for name in names if name.strip()]
        if not names or names == ["*"]:
            return list(tbl.c)
        return [tbl.c[name] for name in names]
