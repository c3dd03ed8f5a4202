"""Procurement requests, purchase orders and suppliers."""

from datetime import date, datetime
from typing import Any, Dict, List, Optional

from assetflow.errors import AssetflowError
from assetflow.services.base import BaseService, OptionsLike, eq, merge_options
from assetflow.storage.client import ChangeCallback, Filter, OrderBy, QueryResult, Subscription

NEWEST_REQUEST_FIRST = OrderBy(column="requested_date", ascending=False)
NEWEST_ORDER_FIRST = OrderBy(column="order_date", ascending=False)


def _average(values: List[float]) -> float:
    return round(sum(values) / len(values), 2) if values else 0


class ProcurementService(BaseService):
    """Accessors for procurement requests, purchase orders, suppliers and supplier ratings."""

    # Requests

    async def get_all_requests(self, options: OptionsLike = None) -> QueryResult:
        defaults = {"order_by": {"column": "requested_date", "ascending": False}}
        return await self.db.query("procurement_requests", "select", merge_options(defaults, options))

    async def get_request_by_id(self, request_id: str) -> QueryResult:
        return await self._get_one("procurement_requests", "id", request_id)

    async def get_requests_with_filters(
        self,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        department: Optional[str] = None,
        requested_by: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        search: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> QueryResult:
        filters: List[Filter] = []
        if status:
            filters.append(eq("status", status))
        if priority:
            filters.append(eq("priority", priority))
        if department:
            filters.append(eq("department", department))
        if requested_by:
            filters.append(eq("requested_by", requested_by))
        if date_from:
            filters.append(Filter(column="requested_date", operator="gte", value=date_from))
        if date_to:
            filters.append(Filter(column="requested_date", operator="lte", value=date_to))
        if search:
            filters.append(Filter(column="item_name", operator="ilike", value=f"%{search}%"))
        return await self._select("procurement_requests", filters, NEWEST_REQUEST_FIRST, limit=limit, offset=offset)

    async def create_request(self, request_data: Dict[str, Any]) -> QueryResult:
        return await self._insert(
            "procurement_requests",
            {**request_data, "requested_date": date.today()},
            stamps=("created_at", "updated_at"),
        )

    @staticmethod
    def _status_change(status: str, approved_by: Optional[str], rejection_reason: Optional[str]) -> Dict[str, Any]:
        update_data: Dict[str, Any] = {"status": status}
        if status == "approved":
            update_data["approved_by"] = approved_by
            update_data["approved_date"] = date.today()
        elif status == "rejected":
            update_data["rejection_reason"] = rejection_reason
        return update_data

    async def update_request_status(
        self,
        request_id: str,
        status: str,
        approved_by: Optional[str] = None,
        rejection_reason: Optional[str] = None,
    ) -> QueryResult:
        """Move a request to ``status``.

        Approval records the approver and today's date; rejection records
        the reason.
        """
        return await self._update(
            "procurement_requests",
            request_id,
            self._status_change(status, approved_by, rejection_reason),
        )

    async def bulk_update_request_status(
        self,
        request_ids: List[str],
        status: str,
        approved_by: Optional[str] = None,
        rejection_reason: Optional[str] = None,
    ) -> Dict[str, Any]:
        results = []
        errors = []
        for request_id in request_ids:
            result = await self.update_request_status(request_id, status, approved_by, rejection_reason)
            if result.ok:
                results.append({"id": request_id, "request": result.data})
            else:
                errors.append({"id": request_id, "error": result.error})
        return {"results": results, "errors": errors, "success": not errors}

    async def get_requests_by_status(self, status: str) -> QueryResult:
        return await self._select("procurement_requests", [eq("status", status)], NEWEST_REQUEST_FIRST)

    async def get_requests_by_user(self, user_id: str) -> QueryResult:
        return await self._select("procurement_requests", [eq("requested_by", user_id)], NEWEST_REQUEST_FIRST)

    # Purchase orders

    async def get_all_purchase_orders(self, options: OptionsLike = None) -> QueryResult:
        defaults = {"order_by": {"column": "order_date", "ascending": False}}
        return await self.db.query("purchase_orders", "select", merge_options(defaults, options))

    async def get_purchase_order_by_id(self, order_id: str) -> QueryResult:
        return await self._get_one("purchase_orders", "id", order_id)

    async def create_purchase_order(self, order_data: Dict[str, Any]) -> QueryResult:
        return await self._insert(
            "purchase_orders",
            {**order_data, "order_date": date.today()},
            stamps=("created_at", "updated_at"),
        )

    async def update_order_status(self, order_id: str, status: str) -> QueryResult:
        update_data: Dict[str, Any] = {"status": status}
        if status == "delivered":
            update_data["actual_delivery"] = datetime.utcnow()
        return await self._update("purchase_orders", order_id, update_data)

    async def get_orders_by_status(self, status: str) -> QueryResult:
        return await self._select("purchase_orders", [eq("status", status)], NEWEST_ORDER_FIRST)

    async def get_spending_data(self) -> QueryResult:
        return await self._select(
            "purchase_orders",
            order_by=OrderBy(column="order_date"),
            columns=["order_date", "total_amount", "status"],
        )

    # Purchase order items

    async def get_purchase_order_items(self, order_id: str) -> QueryResult:
        return await self._select(
            "purchase_order_items",
            [eq("purchase_order_id", order_id)],
            OrderBy(column="created_at"),
        )

    async def create_purchase_order_item(self, item_data: Dict[str, Any]) -> QueryResult:
        return await self._insert("purchase_order_items", item_data)

    async def update_purchase_order_item(self, item_id: str, update_data: Dict[str, Any]) -> QueryResult:
        return await self._update("purchase_order_items", item_id, update_data, stamp=None)

    async def delete_purchase_order_item(self, item_id: str) -> QueryResult:
        return await self._delete("purchase_order_items", item_id)

    # Suppliers

    async def get_all_suppliers(self, options: OptionsLike = None) -> QueryResult:
        defaults = {"order_by": {"column": "name", "ascending": True}}
        return await self.db.query("suppliers", "select", merge_options(defaults, options))

    async def get_supplier_by_id(self, supplier_id: str) -> QueryResult:
        return await self._get_one("suppliers", "id", supplier_id)

    async def create_supplier(self, supplier_data: Dict[str, Any]) -> QueryResult:
        return await self._insert("suppliers", supplier_data, stamps=("created_at", "updated_at"))

    async def update_supplier(self, supplier_id: str, update_data: Dict[str, Any]) -> QueryResult:
        return await self._update("suppliers", supplier_id, update_data)

    async def get_active_suppliers(self) -> QueryResult:
        return await self._select("suppliers", [eq("is_active", True)], OrderBy(column="name"))

    async def delete_supplier(self, supplier_id: str) -> QueryResult:
        """Deactivate a supplier; its orders and ratings are kept."""
        return await self.update_supplier(supplier_id, {"is_active": False})

    async def reactivate_supplier(self, supplier_id: str) -> QueryResult:
        return await self.update_supplier(supplier_id, {"is_active": True})

    # Supplier ratings

    async def get_supplier_ratings(self, supplier_id: str) -> QueryResult:
        return await self._select(
            "supplier_ratings",
            [eq("supplier_id", supplier_id)],
            OrderBy(column="created_at", ascending=False),
        )

    async def rate_supplier(self, rating_data: Dict[str, Any]) -> QueryResult:
        return await self._insert("supplier_ratings", rating_data)

    async def update_supplier_rating(self, rating_id: str, update_data: Dict[str, Any]) -> QueryResult:
        return await self._update("supplier_ratings", rating_id, update_data, stamp=None)

    async def delete_supplier_rating(self, rating_id: str) -> QueryResult:
        return await self._delete("supplier_ratings", rating_id)

    async def update_supplier_rating_average(self, supplier_id: str) -> QueryResult:
        """Store the mean of a supplier's ratings, rounded to two decimals.

        Returns:
            QueryResult with the updated supplier, or ``data=None`` when the
            supplier has no ratings
        """
        ratings = await self.get_supplier_ratings(supplier_id)
        if not ratings.ok or not ratings.data:
            return QueryResult(data=None, error=ratings.error, error_code=ratings.error_code)
        average = _average([r["rating"] for r in ratings.data])
        return await self.update_supplier(supplier_id, {"rating": average})

    async def get_supplier_performance(self, supplier_id: str) -> QueryResult:
        """Order counts, delivery rate, delivered spend and rating summary for a supplier."""
        try:
            ratings = (await self.get_supplier_ratings(supplier_id)).unwrap()
            orders = (
                await self._select(
                    "purchase_orders",
                    [eq("supplier_id", supplier_id)],
                    columns=["total_amount", "status", "order_date"],
                )
            ).unwrap()
        except AssetflowError as e:
            return QueryResult.failure(e)

        delivered = [order for order in orders if order["status"] == "delivered"]
        delivery_rate = len(delivered) / len(orders) * 100 if orders else 0
        return QueryResult(
            data={
                "total_orders": len(orders),
                "delivered_orders": len(delivered),
                "delivery_rate": round(delivery_rate, 2),
                "total_spent": sum(order["total_amount"] or 0 for order in delivered),
                "average_rating": _average([r["rating"] for r in ratings]),
                "total_ratings": len(ratings),
            }
        )

    async def get_procurement_stats(self) -> QueryResult:
        try:
            data = {
                "total_requests": await self._count("procurement_requests"),
                "pending_requests": await self._count("procurement_requests", [eq("status", "pending")]),
                "approved_requests": await self._count("procurement_requests", [eq("status", "approved")]),
                "total_orders": await self._count("purchase_orders"),
                "pending_orders": await self._count("purchase_orders", [eq("status", "pending")]),
                "delivered_orders": await self._count("purchase_orders", [eq("status", "delivered")]),
            }
        except AssetflowError as e:
            return QueryResult.failure(e)
        return QueryResult(data=data)

    def subscribe_to_requests(self, callback: ChangeCallback) -> Optional[Subscription]:
        return self.db.subscribe("procurement_requests", callback)

    def subscribe_to_orders(self, callback: ChangeCallback) -> Optional[Subscription]:
        return self.db.subscribe("purchase_orders", callback)

    def subscribe_to_suppliers(self, callback: ChangeCallback) -> Optional[Subscription]:
        return self.db.subscribe("suppliers", callback)
