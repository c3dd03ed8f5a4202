"""Inventory, movement and delivery service."""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from assetflow.errors import AssetflowError
from assetflow.services.base import BaseService, OptionsLike, eq, merge_options
from assetflow.storage.client import ChangeCallback, Filter, OrderBy, QueryResult, Subscription

log = logging.getLogger(__name__)

BY_NAME = OrderBy(column="name")
NEWEST_MOVEMENT_FIRST = OrderBy(column="movement_date", ascending=False)
NEWEST_DELIVERY_FIRST = OrderBy(column="delivery_date", ascending=False)


class InventoryService(BaseService):
    """Accessors for inventory items, stock movements, deliveries and inventory alerts."""

    # Items

    async def get_all_items(self, options: OptionsLike = None) -> QueryResult:
        defaults = {"order_by": {"column": "name", "ascending": True}}
        return await self.db.query("inventory_items", "select", merge_options(defaults, options))

    async def get_item_by_id(self, item_id: str) -> QueryResult:
        return await self._get_one("inventory_items", "id", item_id)

    async def get_item_by_rfid(self, rfid_code: str) -> QueryResult:
        return await self._get_one("inventory_items", "rfid_code", rfid_code)

    async def get_items_with_filters(
        self,
        category: Optional[str] = None,
        status: Optional[str] = None,
        location: Optional[str] = None,
        search: Optional[str] = None,
        min_quantity: Optional[int] = None,
        max_quantity: Optional[int] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> QueryResult:
        """Page through items matching every given criterion.

        ``location`` and ``search`` are case-insensitive substring matches,
        the latter against the item name.
        """
        filters: List[Filter] = []
        if category:
            filters.append(eq("category", category))
        if status:
            filters.append(eq("status", status))
        if location:
            filters.append(Filter(column="location", operator="ilike", value=f"%{location}%"))
        if min_quantity is not None:
            filters.append(Filter(column="quantity", operator="gte", value=min_quantity))
        if max_quantity is not None:
            filters.append(Filter(column="quantity", operator="lte", value=max_quantity))
        if search:
            filters.append(Filter(column="name", operator="ilike", value=f"%{search}%"))
        return await self._select("inventory_items", filters, BY_NAME, limit=limit, offset=offset)

    async def create_item(self, item_data: Dict[str, Any]) -> QueryResult:
        return await self._insert(
            "inventory_items", item_data, stamps=("last_updated", "created_at", "updated_at")
        )

    async def update_item(self, item_id: str, update_data: Dict[str, Any]) -> QueryResult:
        return await self._update("inventory_items", item_id, {**update_data, "last_updated": datetime.utcnow()})

    async def update_quantity(self, item_id: str, quantity: int) -> QueryResult:
        return await self.update_item(item_id, {"quantity": quantity})

    async def update_item_status(self, item_id: str, status: str) -> QueryResult:
        return await self.update_item(item_id, {"status": status})

    async def bulk_update_quantities(self, updates: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Set quantities for several items.

        Args:
            updates: ``{"item_id", "quantity"}`` mappings

        Returns:
            Dict with per-item ``results``, failed ``errors`` and ``success``
        """
        results = []
        errors = []
        for update in updates:
            result = await self.update_quantity(update["item_id"], update["quantity"])
            if result.ok:
                results.append({"item_id": update["item_id"], "item": result.data})
            else:
                errors.append({"item_id": update["item_id"], "error": result.error})
        return {"results": results, "errors": errors, "success": not errors}

    async def delete_item(self, item_id: str) -> QueryResult:
        return await self._delete("inventory_items", item_id)

    async def get_items_by_category(self, category: str) -> QueryResult:
        return await self._select("inventory_items", [eq("category", category)], BY_NAME)

    async def get_items_by_status(self, status: str) -> QueryResult:
        return await self._select("inventory_items", [eq("status", status)], BY_NAME)

    async def get_low_stock_items(self) -> QueryResult:
        """Items at or below their own minimum quantity, lowest stock first."""
        result = await self._select(
            "inventory_items",
            [Filter(column="min_quantity", operator="neq", value=None)],
            OrderBy(column="quantity"),
        )
        if not result.ok:
            return result
        return QueryResult(data=[item for item in result.data if item["quantity"] <= item["min_quantity"]])

    async def get_out_of_stock_items(self) -> QueryResult:
        return await self._select("inventory_items", [eq("quantity", 0)], BY_NAME)

    async def get_category_stats(self) -> QueryResult:
        """Item count and total quantity per category."""
        result = await self._select("inventory_items", columns=["category", "quantity"])
        if not result.ok:
            return result
        stats: Dict[Optional[str], Dict[str, Any]] = {}
        for item in result.data:
            entry = stats.setdefault(
                item["category"],
                {"category": item["category"], "item_count": 0, "total_quantity": 0},
            )
            entry["item_count"] += 1
            entry["total_quantity"] += item["quantity"] or 0
        return QueryResult(data=sorted(stats.values(), key=lambda entry: entry["category"] or ""))

    # Movements

    async def get_inventory_movements(self, item_id: Optional[str] = None) -> QueryResult:
        filters = [eq("item_id", item_id)] if item_id else []
        return await self._select("inventory_movements", filters, NEWEST_MOVEMENT_FIRST)

    async def get_item_movement_history(self, item_id: str, limit: int = 50) -> QueryResult:
        return await self._select("inventory_movements", [eq("item_id", item_id)], NEWEST_MOVEMENT_FIRST, limit=limit)

    async def record_movement(self, movement_data: Dict[str, Any]) -> QueryResult:
        return await self._insert("inventory_movements", movement_data, stamps=("movement_date",))

    async def _load_item(self, item_id: str) -> QueryResult:
        result = await self.get_item_by_id(item_id)
        if result.ok and result.data is None:
            return QueryResult(error="Item not found", error_code="NOT_FOUND")
        return result

    async def check_in_item(
        self, item_id: str, quantity: int, location: Optional[str], performed_by: str, notes: str = ""
    ) -> QueryResult:
        """Receive ``quantity`` units of an item and record the movement.

        Returns:
            QueryResult with the updated item
        """
        item_result = await self._load_item(item_id)
        if not item_result.ok:
            return item_result

        movement = await self.record_movement(
            {
                "item_id": item_id,
                "movement_type": "in",
                "quantity": quantity,
                "to_location": location,
                "reason": "Check-in",
                "performed_by": performed_by,
                "notes": notes,
            }
        )
        if not movement.ok:
            return movement
        return await self.update_quantity(item_id, item_result.data["quantity"] + quantity)

    async def check_out_item(
        self, item_id: str, quantity: int, location: Optional[str], performed_by: str, notes: str = ""
    ) -> QueryResult:
        """Issue ``quantity`` units of an item.

        Returns:
            QueryResult with the updated item, or a ``CONFLICT`` error when
            fewer units are in stock
        """
        item_result = await self._load_item(item_id)
        if not item_result.ok:
            return item_result
        available = item_result.data["quantity"]
        if available < quantity:
            log.info(f"Check-out of {quantity} refused for item {item_id}: {available} in stock")
            return QueryResult(error="Insufficient quantity available", error_code="CONFLICT")

        movement = await self.record_movement(
            {
                "item_id": item_id,
                "movement_type": "out",
                "quantity": quantity,
                "from_location": location,
                "reason": "Check-out",
                "performed_by": performed_by,
                "notes": notes,
            }
        )
        if not movement.ok:
            return movement
        return await self.update_quantity(item_id, available - quantity)

    async def transfer_item(
        self,
        item_id: str,
        from_location: str,
        to_location: str,
        quantity: int,
        performed_by: str,
        notes: str = "",
    ) -> QueryResult:
        item_result = await self._load_item(item_id)
        if not item_result.ok:
            return item_result

        movement = await self.record_movement(
            {
                "item_id": item_id,
                "movement_type": "transfer",
                "quantity": quantity,
                "from_location": from_location,
                "to_location": to_location,
                "reason": "Location transfer",
                "performed_by": performed_by,
                "notes": notes,
            }
        )
        if not movement.ok:
            return movement
        return await self.update_item(item_id, {"location": to_location})

    # Deliveries

    async def get_all_deliveries(self, options: OptionsLike = None) -> QueryResult:
        defaults = {"order_by": {"column": "delivery_date", "ascending": False}}
        return await self.db.query("deliveries", "select", merge_options(defaults, options))

    async def get_delivery_by_id(self, delivery_id: str) -> QueryResult:
        return await self._get_one("deliveries", "id", delivery_id)

    async def create_delivery(self, delivery_data: Dict[str, Any]) -> QueryResult:
        return await self._insert("deliveries", delivery_data, stamps=("created_at", "updated_at"))

    async def update_delivery_status(self, delivery_id: str, status: str) -> QueryResult:
        update_data: Dict[str, Any] = {"status": status}
        if status == "delivered":
            update_data["actual_delivery_date"] = datetime.utcnow()
        return await self._update("deliveries", delivery_id, update_data)

    async def get_deliveries_by_status(self, status: str) -> QueryResult:
        return await self._select("deliveries", [eq("status", status)], NEWEST_DELIVERY_FIRST)

    async def get_delivery_stats(self) -> QueryResult:
        try:
            data = {
                "total_deliveries": await self._count("deliveries"),
                "scheduled_deliveries": await self._count("deliveries", [eq("status", "scheduled")]),
                "delivered": await self._count("deliveries", [eq("status", "delivered")]),
                "in_transit": await self._count("deliveries", [eq("status", "in_transit")]),
            }
        except AssetflowError as e:
            return QueryResult.failure(e)
        return QueryResult(data=data)

    # Alerts

    async def get_inventory_alerts(self) -> QueryResult:
        return await self._select(
            "inventory_alerts",
            [eq("is_resolved", False)],
            OrderBy(column="priority", ascending=False),
        )

    async def get_alerts_by_type(self, alert_type: str) -> QueryResult:
        return await self._select(
            "inventory_alerts",
            [eq("alert_type", alert_type), eq("is_resolved", False)],
            OrderBy(column="created_at", ascending=False),
        )

    async def create_alert(self, alert_data: Dict[str, Any]) -> QueryResult:
        return await self._insert("inventory_alerts", {"is_resolved": False, **alert_data})

    async def resolve_alert(self, alert_id: str, resolved_by: str) -> QueryResult:
        return await self._update(
            "inventory_alerts",
            alert_id,
            {"is_resolved": True, "resolved_by": resolved_by},
            stamp="resolved_at",
        )

    async def get_inventory_stats(self) -> QueryResult:
        try:
            data = {
                "total_items": await self._count("inventory_items"),
                "low_stock_items": await self._count("inventory_items", [eq("status", "low_stock")]),
                "out_of_stock_items": await self._count("inventory_items", [eq("status", "out_of_stock")]),
                "total_deliveries": await self._count("deliveries"),
            }
        except AssetflowError as e:
            return QueryResult.failure(e)
        return QueryResult(data=data)

    def subscribe_to_items(self, callback: ChangeCallback) -> Optional[Subscription]:
        return self.db.subscribe("inventory_items", callback)

    def subscribe_to_movements(self, callback: ChangeCallback) -> Optional[Subscription]:
        return self.db.subscribe("inventory_movements", callback)

    def subscribe_to_deliveries(self, callback: ChangeCallback) -> Optional[Subscription]:
        return self.db.subscribe("deliveries", callback)

    def subscribe_to_alerts(self, callback: ChangeCallback) -> Optional[Subscription]:
        return self.db.subscribe("inventory_alerts", callback)
