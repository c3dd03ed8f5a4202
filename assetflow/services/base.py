"""Shared helpers for table accessor services."""

from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from assetflow.storage.client import DataClient, Filter, OrderBy, QueryOptions, QueryResult

OptionsLike = Optional[Union[QueryOptions, Dict[str, Any]]]


def eq(column: str, value: Any) -> Filter:
    """Shorthand for an equality filter."""
    return Filter(column=column, operator="eq", value=value)


def merge_options(defaults: Dict[str, Any], overrides: OptionsLike = None) -> QueryOptions:
    """Overlay caller supplied options on an accessor's defaults."""
    merged = dict(defaults)
    if isinstance(overrides, QueryOptions):
        merged.update(overrides.model_dump(exclude_unset=True))
    elif overrides:
        merged.update(overrides)
    return QueryOptions.model_validate(merged)


class BaseService:
    """Base class holding the injected DataClient."""

    def __init__(self, db: DataClient):
        """Initialize service with a data client."""
        self.db = db

    async def _select(
        self,
        table: str,
        filters: Optional[List[Filter]] = None,
        order_by: Optional[OrderBy] = None,
        **options: Any,
    ) -> QueryResult:
        return await self.db.query(
            table,
            "select",
            QueryOptions(filters=filters or [], order_by=order_by, **options),
        )

    async def _get_one(self, table: str, column: str, value: Any) -> QueryResult:
        result = await self._select(table, [eq(column, value)], limit=1)
        return result.first()

    async def _insert(self, table: str, data: Dict[str, Any], stamps: tuple = ("created_at",)) -> QueryResult:
        """Insert one row, stamping the given timestamp columns."""
        now = datetime.utcnow()
        row = {**data, **{column: now for column in stamps}}
        result = await self.db.query(table, "insert", QueryOptions(data=row))
        return result.first()

    async def _update(
        self,
        table: str,
        row_id: Any,
        data: Dict[str, Any],
        stamp: Optional[str] = "updated_at",
        filters: Optional[List[Filter]] = None,
    ) -> QueryResult:
        """Update one row by id; data is ``None`` when no row matched."""
        values = dict(data)
        if stamp:
            values[stamp] = datetime.utcnow()
        result = await self.db.query(
            table,
            "update",
            QueryOptions(data=values, filters=[eq("id", row_id)] + list(filters or [])),
        )
        return result.first()

    async def _delete(self, table: str, row_id: Any) -> QueryResult:
        result = await self.db.query(table, "delete", QueryOptions(filters=[eq("id", row_id)]))
        return result.first()

    async def _count(self, table: str, filters: Optional[List[Filter]] = None) -> int:
        return (await self.db.count(table, filters or [])).unwrap()
