"""User management service."""

from datetime import datetime
from typing import Any, Dict, Optional

from assetflow.errors import AssetflowError
from assetflow.services.base import BaseService, OptionsLike, eq, merge_options
from assetflow.storage.client import ChangeCallback, Filter, OrderBy, QueryResult, Subscription

USER_COLUMNS = "id, username, email, full_name, role, is_active, last_login, created_at"


class UserService(BaseService):
    """Accessors for the users table."""

    async def get_all_users(self, options: OptionsLike = None) -> QueryResult:
        defaults = {
            "columns": USER_COLUMNS,
            "order_by": {"column": "created_at", "ascending": False},
        }
        return await self.db.query("users", "select", merge_options(defaults, options))

    async def get_user_by_id(self, user_id: str) -> QueryResult:
        return await self._get_one("users", "id", user_id)

    async def get_user_by_username(self, username: str) -> QueryResult:
        return await self._get_one("users", "username", username)

    async def get_user_role(self, user_id: str) -> Optional[str]:
        """Return the role of a user, or None if no such user exists.

        Raises:
            PassthroughDatabaseError: If the lookup itself fails
        """
        rows = (await self._select("users", [eq("id", user_id)], columns="role", limit=1)).unwrap()
        return rows[0]["role"] if rows else None

    async def create_user(self, user_data: Dict[str, Any]) -> QueryResult:
        return await self._insert("users", user_data)

    async def update_user(self, user_id: str, update_data: Dict[str, Any]) -> QueryResult:
        return await self._update("users", user_id, update_data)

    async def update_user_status(self, user_id: str, is_active: bool) -> QueryResult:
        return await self.update_user(user_id, {"is_active": is_active})

    async def update_last_login(self, user_id: str) -> QueryResult:
        return await self.update_user(user_id, {"last_login": datetime.utcnow()})

    async def get_users_by_role(self, role: str, active_only: bool = False) -> QueryResult:
        filters = [eq("role", role)]
        if active_only:
            filters.append(eq("is_active", True))
        return await self._select("users", filters, OrderBy(column="full_name"))

    async def get_active_users(self) -> QueryResult:
        return await self._select("users", [eq("is_active", True)], OrderBy(column="full_name"))

    async def search_users(self, search_term: str) -> QueryResult:
        """Case-insensitive match on full name, username or email."""
        pattern = f"%{search_term}%"
        return await self._select(
            "users",
            or_filters=[
                Filter(column="full_name", operator="ilike", value=pattern),
                Filter(column="username", operator="ilike", value=pattern),
                Filter(column="email", operator="ilike", value=pattern),
            ],
            order_by=OrderBy(column="full_name"),
        )

    async def get_user_stats(self) -> QueryResult:
        try:
            total = await self._count("users")
            active = await self._count("users", [eq("is_active", True)])
            roles = (await self._select("users", columns="role")).unwrap()
        except AssetflowError as e:
            return QueryResult.failure(e)

        by_role: Dict[str, int] = {}
        for row in roles:
            by_role[row["role"]] = by_role.get(row["role"], 0) + 1
        return QueryResult(
            data={
                "total": total,
                "active": active,
                "inactive": total - active,
                "by_role": by_role,
            }
        )

    def subscribe_to_users(self, callback: ChangeCallback) -> Optional[Subscription]:
        return self.db.subscribe("users", callback)
