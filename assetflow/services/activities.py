"""Activity feed and audit logging service."""

from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from assetflow.errors import AssetflowError
from assetflow.services.base import BaseService, OptionsLike, eq, merge_options
from assetflow.storage.client import ChangeCallback, Filter, OrderBy, QueryResult, Subscription

NEWEST_FIRST = OrderBy(column="created_at", ascending=False)


class ActivityService(BaseService):
    """Accessors for system_activities and audit_logs."""

    async def get_all_activities(self, options: OptionsLike = None) -> QueryResult:
        defaults = {"order_by": {"column": "created_at", "ascending": False}}
        return await self.db.query("system_activities", "select", merge_options(defaults, options))

    async def get_activities_by_user(self, user_id: str) -> QueryResult:
        return await self._select("system_activities", [eq("user_id", user_id)], NEWEST_FIRST)

    async def get_recent_activities(self, limit: int = 50) -> QueryResult:
        return await self._select("system_activities", order_by=NEWEST_FIRST, limit=limit)

    async def get_activities_by_action(self, action: str) -> QueryResult:
        return await self._select("system_activities", [eq("action", action)], NEWEST_FIRST)

    async def get_activities_by_entity(self, entity_type: str, entity_id: str) -> QueryResult:
        return await self._select(
            "system_activities",
            [eq("entity_type", entity_type), eq("entity_id", entity_id)],
            NEWEST_FIRST,
        )

    async def log_activity(self, activity_data: Dict[str, Any]) -> QueryResult:
        """Append an activity row.

        ``metadata`` may be passed directly; it is stored in the JSON
        metadata column.
        """
        return await self._insert("system_activities", activity_data)

    async def log_user_activity(
        self,
        user_id: str,
        username: Optional[str],
        action: str,
        description: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> QueryResult:
        metadata = metadata or {}
        return await self.log_activity(
            {
                "user_id": user_id,
                "username": username,
                "action": action,
                "description": description,
                "entity_type": metadata.get("entity_type"),
                "entity_id": metadata.get("entity_id"),
                "old_values": metadata.get("old_values"),
                "new_values": metadata.get("new_values"),
                "ip_address": metadata.get("ip_address"),
                "user_agent": metadata.get("user_agent"),
                "session_id": metadata.get("session_id"),
            }
        )

    async def log_login(self, user_id: str, username: str, ip_address: str = None, user_agent: str = None) -> QueryResult:
        return await self.log_user_activity(
            user_id,
            username,
            "LOGIN",
            "User logged in successfully",
            {"ip_address": ip_address, "user_agent": user_agent},
        )

    async def log_logout(self, user_id: str, username: str, ip_address: str = None, user_agent: str = None) -> QueryResult:
        return await self.log_user_activity(
            user_id,
            username,
            "LOGOUT",
            "User logged out",
            {"ip_address": ip_address, "user_agent": user_agent},
        )

    async def log_data_change(
        self,
        user_id: str,
        username: str,
        entity_type: str,
        entity_id: str,
        action: str,
        old_values: Optional[Dict[str, Any]],
        new_values: Optional[Dict[str, Any]],
    ) -> QueryResult:
        return await self.log_user_activity(
            user_id,
            username,
            f"{action}_{entity_type.upper()}",
            f"{action} {entity_type}",
            {
                "entity_type": entity_type,
                "entity_id": entity_id,
                "old_values": old_values,
                "new_values": new_values,
            },
        )

    async def get_audit_logs(self, options: OptionsLike = None) -> QueryResult:
        defaults = {"order_by": {"column": "created_at", "ascending": False}}
        return await self.db.query("audit_logs", "select", merge_options(defaults, options))

    async def log_audit_event(self, audit_data: Dict[str, Any]) -> QueryResult:
        return await self._insert("audit_logs", audit_data)

    async def get_activity_stats(self) -> QueryResult:
        since = datetime.utcnow() - timedelta(hours=24)
        try:
            total = await self._count("system_activities")
            recent = await self._count(
                "system_activities",
                [Filter(column="created_at", operator="gte", value=since)],
            )
            actions = (await self._select("system_activities", columns="action")).unwrap()
        except AssetflowError as e:
            return QueryResult.failure(e)

        by_action: Dict[str, int] = {}
        for row in actions:
            by_action[row["action"]] = by_action.get(row["action"], 0) + 1
        return QueryResult(
            data={
                "total_activities": total,
                "recent_activities": recent,
                "activities_by_action": by_action,
            }
        )

    def subscribe_to_activities(self, callback: ChangeCallback) -> Optional[Subscription]:
        return self.db.subscribe("system_activities", callback)

    def subscribe_to_audit_logs(self, callback: ChangeCallback) -> Optional[Subscription]:
        return self.db.subscribe("audit_logs", callback)
