"""Subscription registry on top of DataClient change events."""

import logging
from typing import Any, Callable, Dict, List, Optional

from assetflow.storage.client import ChangeCallback, ChangeEvent, DataClient, Subscription

log = logging.getLogger(__name__)

WORKFLOW_TABLES = ["workflows", "workflow_instances", "workflow_approvals", "approval_requests"]
DOCUMENT_TABLES = ["documents", "verification_queue"]
MAINTENANCE_TABLES = [
    "assets",
    "maintenance_logs",
    "scheduled_maintenance",
    "maintenance_alerts",
    "asset_rfid_tracking",
]
ACTIVITY_TABLES = ["system_activities", "audit_logs"]
PROCUREMENT_TABLES = ["procurement_requests", "purchase_orders", "suppliers"]
INVENTORY_TABLES = ["inventory_items", "inventory_movements", "deliveries", "inventory_alerts"]


class RealtimeService:
    """Tracks the subscriptions opened by one consumer."""

    def __init__(self, client: DataClient):
        self.client = client
        self.subscriptions: Dict[str, Subscription] = {}

    def subscribe(
        self,
        table: str,
        callback: ChangeCallback,
        filter: Optional[Dict[str, Any]] = None,
    ) -> Optional[Subscription]:
        subscription = self.client.subscribe(table, callback, filter)
        if subscription is None:
            log.error(f"Failed to subscribe to {table}")
            return None
        self.subscriptions[f"{table}_{subscription.id}"] = subscription
        return subscription

    def _subscribe_many(self, tables: List[str], callback: ChangeCallback) -> List[Subscription]:
        subscriptions = []
        for table in tables:
            subscription = self.subscribe(table, callback)
            if subscription:
                subscriptions.append(subscription)
        return subscriptions

    def subscribe_to_user_data(
        self,
        user_id: str,
        callback: Callable[[str, ChangeEvent], Any],
    ) -> List[Subscription]:
        """Subscribe to the notifications, workflow instances and approval requests of a user.

        The callback receives the table name and the change event.
        """
        owner_columns = {
            "notifications": "user_id",
            "workflow_instances": "initiated_by",
            "approval_requests": "requested_by",
        }
        subscriptions = []
        for table, column in owner_columns.items():
            subscription = self.subscribe(
                table,
                lambda event, table=table: callback(table, event),
                {column: user_id},
            )
            if subscription:
                subscriptions.append(subscription)
        return subscriptions

    def subscribe_to_workflows(self, callback: ChangeCallback) -> List[Subscription]:
        return self._subscribe_many(WORKFLOW_TABLES, callback)

    def subscribe_to_documents(self, callback: ChangeCallback) -> List[Subscription]:
        return self._subscribe_many(DOCUMENT_TABLES, callback)

    def subscribe_to_maintenance(self, callback: ChangeCallback) -> List[Subscription]:
        return self._subscribe_many(MAINTENANCE_TABLES, callback)

    def subscribe_to_procurement(self, callback: ChangeCallback) -> List[Subscription]:
        return self._subscribe_many(PROCUREMENT_TABLES, callback)

    def subscribe_to_inventory(self, callback: ChangeCallback) -> List[Subscription]:
        return self._subscribe_many(INVENTORY_TABLES, callback)

    def subscribe_to_system_activities(self, callback: ChangeCallback) -> List[Subscription]:
        return self._subscribe_many(ACTIVITY_TABLES, callback)

    def subscribe_to_all_data(self, callback: ChangeCallback) -> List[Subscription]:
        tables = ["users", "notifications"] + WORKFLOW_TABLES + DOCUMENT_TABLES + MAINTENANCE_TABLES + ACTIVITY_TABLES
        tables += PROCUREMENT_TABLES + INVENTORY_TABLES
        return self._subscribe_many(tables, callback)

    def create_role_based_subscription(self, user_role: str, callback: ChangeCallback) -> List[Subscription]:
        """Subscribe to the tables relevant for a role."""
        subscriptions: List[Subscription] = []
        if user_role == "Admin":
            subscriptions.extend(self.subscribe_to_all_data(callback))
        elif user_role == "Manager":
            subscriptions.extend(self.subscribe_to_workflows(callback))
            subscriptions.extend(self.subscribe_to_documents(callback))
            subscriptions.extend(self.subscribe_to_procurement(callback))
        elif user_role == "Project Manager":
            subscriptions.extend(self.subscribe_to_workflows(callback))
        elif user_role == "Employee":
            subscriptions.extend(self.subscribe_to_inventory(callback))
        elif user_role == "Procurement Staff":
            subscriptions.extend(self.subscribe_to_procurement(callback))
        elif user_role == "Maintenance Staff":
            subscriptions.extend(self.subscribe_to_maintenance(callback))
        elif user_role == "Document Analyst":
            subscriptions.extend(self.subscribe_to_documents(callback))
        else:
            log.warning(f"Unknown role: {user_role}")
        return subscriptions

    @staticmethod
    def create_event_handler(handlers: Dict[str, ChangeCallback]) -> ChangeCallback:
        """Build a callback routing events to per-table handlers plus ``default``."""

        def handle(event: ChangeEvent) -> None:
            if event.table in handlers:
                handlers[event.table](event)
            if "default" in handlers:
                handlers["default"](event)
            log.debug(f"Real-time event: {event.event_type.value} on {event.table}")

        return handle

    def unsubscribe(self, subscription: Optional[Subscription]) -> bool:
        if subscription is None:
            return False
        for key, tracked in list(self.subscriptions.items()):
            if tracked is subscription:
                del self.subscriptions[key]
        return self.client.unsubscribe(subscription)

    def unsubscribe_all(self) -> None:
        for key, subscription in list(self.subscriptions.items()):
            self.client.unsubscribe(subscription)
            del self.subscriptions[key]

    def get_subscription_status(self) -> Dict[str, Any]:
        return {
            "total_subscriptions": len(self.subscriptions),
            "subscriptions": list(self.subscriptions.keys()),
        }
