"""Per-user notification service."""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from assetflow.errors import AssetflowError
from assetflow.services.base import BaseService, eq
from assetflow.storage.client import (
    ChangeCallback,
    DataClient,
    Filter,
    OrderBy,
    QueryOptions,
    QueryResult,
    Subscription,
)

log = logging.getLogger(__name__)

NEWEST_FIRST = OrderBy(column="created_at", ascending=False)


class NotificationService(BaseService):
    """Creates, reads and subscribes to notifications."""

    def __init__(self, db: DataClient):
        """Initialize service with a data client."""
        super().__init__(db)
        self._subscriptions: Dict[str, Subscription] = {}

    async def create_notification(
        self,
        user_id: str,
        type: str,
        title: str,
        message: str,
        related_entity: Optional[Dict[str, Any]] = None,
        priority: str = "medium",
    ) -> QueryResult:
        """Create a notification for one user.

        Args:
            user_id: Recipient
            type: info, warning, error, success, workflow or announcement
            title: Short title
            message: Body text
            related_entity: Optional ``{"type", "id", "metadata"}`` mapping
            priority: low, medium, high or urgent

        Returns:
            QueryResult with the created row
        """
        related_entity = related_entity or {}
        result = await self._insert(
            "notifications",
            {
                "user_id": user_id,
                "type": type,
                "title": title,
                "message": message,
                "priority": priority,
                "is_read": False,
                "related_entity_type": related_entity.get("type"),
                "related_entity_id": related_entity.get("id"),
                "metadata": related_entity.get("metadata"),
            },
        )
        if not result.ok:
            log.error(f"Failed to create notification for user {user_id}: {result.error}")
        return result

    async def mark_as_read(self, notification_id: str) -> QueryResult:
        return await self._update(
            "notifications",
            notification_id,
            {"is_read": True, "read_at": datetime.utcnow()},
        )

    async def mark_all_as_read(self, user_id: str) -> QueryResult:
        now = datetime.utcnow()
        return await self.db.query(
            "notifications",
            "update",
            QueryOptions(
                data={"is_read": True, "read_at": now, "updated_at": now},
                filters=[eq("user_id", user_id), eq("is_read", False)],
            ),
        )

    async def get_unread_count(self, user_id: str) -> QueryResult:
        return await self.db.count("notifications", [eq("user_id", user_id), eq("is_read", False)])

    async def get_user_notifications(
        self,
        user_id: str,
        filters: Optional[List[Filter]] = None,
        limit: Optional[int] = None,
        unread_only: bool = False,
    ) -> QueryResult:
        conditions = [eq("user_id", user_id)] + list(filters or [])
        if unread_only:
            conditions.append(eq("is_read", False))
        return await self._select("notifications", conditions, NEWEST_FIRST, limit=limit)

    async def delete_notification(self, notification_id: str) -> QueryResult:
        return await self._delete("notifications", notification_id)

    async def create_workflow_approval_notification(
        self,
        approver_id: str,
        instance: Dict[str, Any],
        step: Optional[Dict[str, Any]] = None,
    ) -> QueryResult:
        request_type = instance.get("request_type")
        step_name = f" ({step['step_name']})" if step and step.get("step_name") else ""
        return await self.create_notification(
            approver_id,
            "workflow",
            f"Approval Required: {request_type}",
            f"You have a pending {request_type} approval. "
            f"Step {instance.get('current_step')} of {instance.get('total_steps')}{step_name}.",
            {
                "type": "workflow_instance",
                "id": instance.get("id"),
                "metadata": {
                    "workflow_id": instance.get("workflow_id"),
                    "request_type": request_type,
                    "current_step": instance.get("current_step"),
                    "total_steps": instance.get("total_steps"),
                },
            },
            priority="high",
        )

    async def create_workflow_completion_notification(
        self,
        requester_id: str,
        instance: Dict[str, Any],
    ) -> QueryResult:
        request_type = instance.get("request_type")
        completed_at = instance.get("completed_at")
        return await self.create_notification(
            requester_id,
            "success",
            f"Workflow Approved: {request_type}",
            f"Your {request_type} request has been approved and is ready for implementation.",
            {
                "type": "workflow_instance",
                "id": instance.get("id"),
                "metadata": {
                    "workflow_id": instance.get("workflow_id"),
                    "request_type": request_type,
                    "completed_at": completed_at.isoformat() if completed_at else None,
                },
            },
            priority="medium",
        )

    async def create_workflow_rejection_notification(
        self,
        requester_id: str,
        instance: Dict[str, Any],
        reason: str,
    ) -> QueryResult:
        request_type = instance.get("request_type")
        completed_at = instance.get("completed_at")
        return await self.create_notification(
            requester_id,
            "error",
            f"Workflow Rejected: {request_type}",
            f"Your {request_type} request has been rejected. Reason: {reason}",
            {
                "type": "workflow_instance",
                "id": instance.get("id"),
                "metadata": {
                    "workflow_id": instance.get("workflow_id"),
                    "request_type": request_type,
                    "rejection_reason": reason,
                    "rejected_at": completed_at.isoformat() if completed_at else None,
                },
            },
            priority="high",
        )

    async def create_system_announcement(self, title: str, message: str, priority: str = "medium") -> QueryResult:
        """Send the same announcement to every active user."""
        users = await self._select("users", [eq("is_active", True)], columns="id")
        if not users.ok:
            return users
        if not users.data:
            return QueryResult(data=[])

        now = datetime.utcnow()
        rows = [
            {
                "user_id": user["id"],
                "type": "announcement",
                "title": title,
                "message": message,
                "priority": priority,
                "is_read": False,
                "related_entity_type": "system_announcement",
                "metadata": {"announcement_type": "system"},
                "created_at": now,
            }
            for user in users.data
        ]
        return await self.db.query("notifications", "insert", QueryOptions(data=rows))

    async def get_notification_stats(self, user_id: str) -> QueryResult:
        since = datetime.utcnow() - timedelta(hours=24)
        try:
            data = {
                "unread": (await self.get_unread_count(user_id)).unwrap(),
                "total": await self._count("notifications", [eq("user_id", user_id)]),
                "recent": await self._count(
                    "notifications",
                    [eq("user_id", user_id), Filter(column="created_at", operator="gte", value=since)],
                ),
            }
        except AssetflowError as e:
            return QueryResult.failure(e)
        return QueryResult(data=data)

    def subscribe_to_user_notifications(self, user_id: str, callback: ChangeCallback) -> Optional[Subscription]:
        """Subscribe to one user's notifications, replacing an earlier subscription."""
        self.unsubscribe_from_user_notifications(user_id)
        subscription = self.db.subscribe("notifications", callback, {"user_id": user_id})
        if subscription is not None:
            self._subscriptions[user_id] = subscription
        return subscription

    def unsubscribe_from_user_notifications(self, user_id: str) -> bool:
        subscription = self._subscriptions.pop(user_id, None)
        return self.db.unsubscribe(subscription)

    def unsubscribe_all(self) -> None:
        for subscription in self._subscriptions.values():
            self.db.unsubscribe(subscription)
        self._subscriptions.clear()
