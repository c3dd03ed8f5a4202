"""Maintenance and asset management service."""

from datetime import date, datetime, timedelta
from typing import Any, Dict, Optional

from assetflow.errors import AssetflowError
from assetflow.services.base import BaseService, OptionsLike, eq, merge_options
from assetflow.storage.client import ChangeCallback, Filter, OrderBy, QueryResult, Subscription

BY_NAME = OrderBy(column="name")


class MaintenanceService(BaseService):
    """Accessors for assets, maintenance logs, schedules, alerts and RFID scans."""

    # Assets

    async def get_all_assets(self, options: OptionsLike = None) -> QueryResult:
        defaults = {"order_by": {"column": "name", "ascending": True}}
        return await self.db.query("assets", "select", merge_options(defaults, options))

    async def get_asset_by_id(self, asset_id: str) -> QueryResult:
        return await self._get_one("assets", "id", asset_id)

    async def get_asset_by_tag(self, tag_id: str) -> QueryResult:
        return await self._get_one("assets", "tag_id", tag_id)

    async def create_asset(self, asset_data: Dict[str, Any]) -> QueryResult:
        return await self._insert("assets", asset_data, stamps=("created_at", "updated_at"))

    async def update_asset(self, asset_id: str, update_data: Dict[str, Any]) -> QueryResult:
        return await self._update("assets", asset_id, update_data)

    async def update_asset_condition(self, asset_id: str, condition: str) -> QueryResult:
        return await self.update_asset(asset_id, {"condition": condition})

    async def delete_asset(self, asset_id: str) -> QueryResult:
        return await self._delete("assets", asset_id)

    async def get_assets_by_condition(self, condition: str) -> QueryResult:
        return await self._select("assets", [eq("condition", condition)], BY_NAME)

    async def get_assets_by_category(self, category: str) -> QueryResult:
        return await self._select("assets", [eq("category", category)], BY_NAME)

    async def get_assets_needing_maintenance(self, today: Optional[date] = None) -> QueryResult:
        """Assets whose next maintenance date is today or earlier."""
        today = today or date.today()
        return await self._select(
            "assets",
            [Filter(column="next_maintenance", operator="lte", value=today)],
            OrderBy(column="next_maintenance"),
        )

    # Maintenance logs

    async def get_maintenance_logs(self, asset_id: Optional[str] = None) -> QueryResult:
        filters = [eq("asset_id", asset_id)] if asset_id else []
        return await self._select(
            "maintenance_logs",
            filters,
            OrderBy(column="scheduled_date", ascending=False),
        )

    async def get_maintenance_log_by_id(self, log_id: str) -> QueryResult:
        return await self._get_one("maintenance_logs", "id", log_id)

    async def create_maintenance_log(self, log_data: Dict[str, Any]) -> QueryResult:
        return await self._insert("maintenance_logs", log_data, stamps=("created_at", "updated_at"))

    async def update_maintenance_log(self, log_id: str, update_data: Dict[str, Any]) -> QueryResult:
        return await self._update("maintenance_logs", log_id, update_data)

    async def update_maintenance_status(self, log_id: str, status: str) -> QueryResult:
        update_data: Dict[str, Any] = {"status": status}
        if status == "completed":
            update_data["completion_date"] = datetime.utcnow()
        elif status == "in_progress":
            update_data["start_date"] = datetime.utcnow()
        return await self.update_maintenance_log(log_id, update_data)

    async def get_maintenance_logs_by_status(self, status: str) -> QueryResult:
        return await self._select(
            "maintenance_logs",
            [eq("status", status)],
            OrderBy(column="scheduled_date", ascending=False),
        )

    async def delete_maintenance_log(self, log_id: str) -> QueryResult:
        return await self._delete("maintenance_logs", log_id)

    # Scheduled maintenance

    async def get_scheduled_maintenance(self) -> QueryResult:
        return await self._select("scheduled_maintenance", order_by=OrderBy(column="scheduled_date"))

    async def get_scheduled_maintenance_by_id(self, schedule_id: str) -> QueryResult:
        return await self._get_one("scheduled_maintenance", "id", schedule_id)

    async def create_scheduled_maintenance(self, schedule_data: Dict[str, Any]) -> QueryResult:
        return await self._insert("scheduled_maintenance", schedule_data, stamps=("created_at", "updated_at"))

    async def update_scheduled_maintenance(self, schedule_id: str, update_data: Dict[str, Any]) -> QueryResult:
        return await self._update("scheduled_maintenance", schedule_id, update_data)

    async def delete_scheduled_maintenance(self, schedule_id: str) -> QueryResult:
        return await self._delete("scheduled_maintenance", schedule_id)

    async def get_overdue_maintenance(self, today: Optional[date] = None) -> QueryResult:
        today = today or date.today()
        return await self._select(
            "scheduled_maintenance",
            [
                Filter(column="scheduled_date", operator="lt", value=today),
                eq("status", "scheduled"),
            ],
            OrderBy(column="scheduled_date"),
        )

    async def get_upcoming_maintenance(self, days: int = 7, today: Optional[date] = None) -> QueryResult:
        today = today or date.today()
        return await self._select(
            "scheduled_maintenance",
            [
                Filter(column="scheduled_date", operator="gte", value=today),
                Filter(column="scheduled_date", operator="lte", value=today + timedelta(days=days)),
                eq("status", "scheduled"),
            ],
            OrderBy(column="scheduled_date"),
        )

    # Alerts

    async def get_maintenance_alerts(self) -> QueryResult:
        return await self._select(
            "maintenance_alerts",
            [eq("is_resolved", False)],
            OrderBy(column="priority", ascending=False),
        )

    async def get_maintenance_alerts_by_type(self, alert_type: str) -> QueryResult:
        return await self._select(
            "maintenance_alerts",
            [eq("alert_type", alert_type), eq("is_resolved", False)],
            OrderBy(column="created_at", ascending=False),
        )

    async def create_maintenance_alert(self, alert_data: Dict[str, Any]) -> QueryResult:
        return await self._insert("maintenance_alerts", {"is_resolved": False, **alert_data})

    async def resolve_maintenance_alert(self, alert_id: str, resolved_by: str) -> QueryResult:
        return await self._update(
            "maintenance_alerts",
            alert_id,
            {"is_resolved": True, "resolved_by": resolved_by},
            stamp="resolved_at",
        )

    # RFID tracking

    async def get_asset_rfid_tracking(self, asset_id: Optional[str] = None) -> QueryResult:
        filters = [eq("asset_id", asset_id)] if asset_id else []
        return await self._select(
            "asset_rfid_tracking",
            filters,
            OrderBy(column="scanned_at", ascending=False),
        )

    async def record_asset_rfid_scan(self, scan_data: Dict[str, Any]) -> QueryResult:
        return await self._insert("asset_rfid_tracking", scan_data, stamps=("scanned_at",))

    async def scan_asset_rfid(
        self,
        rfid_code: str,
        scanned_by: str,
        location: Optional[str] = None,
        action: str = "scan",
        notes: str = "",
    ) -> QueryResult:
        """Record a scan for the asset tagged ``rfid_code`` and move it to ``location``."""
        asset_result = await self.get_asset_by_tag(rfid_code)
        if not asset_result.ok:
            return asset_result
        asset = asset_result.data
        if asset is None:
            return QueryResult(error=f"No asset found with RFID tag {rfid_code}", error_code="NOT_FOUND")

        scan_result = await self.record_asset_rfid_scan(
            {
                "asset_id": asset["id"],
                "rfid_code": rfid_code,
                "action": action,
                "location": location,
                "scanned_by": scanned_by,
                "notes": notes,
            }
        )
        if not scan_result.ok:
            return scan_result

        if location and location != asset.get("location"):
            update_result = await self.update_asset(asset["id"], {"location": location})
            if not update_result.ok:
                return update_result
            asset = update_result.data

        return QueryResult(data={"asset": asset, "scan": scan_result.data})

    async def get_maintenance_stats(self) -> QueryResult:
        try:
            data = {
                "total_assets": await self._count("assets"),
                "good_condition": await self._count("assets", [eq("condition", "good")]),
                "needs_repair": await self._count("assets", [eq("condition", "needs_repair")]),
                "critical_assets": await self._count("assets", [eq("condition", "critical")]),
            }
        except AssetflowError as e:
            return QueryResult.failure(e)
        return QueryResult(data=data)

    def subscribe_to_assets(self, callback: ChangeCallback) -> Optional[Subscription]:
        return self.db.subscribe("assets", callback)

    def subscribe_to_maintenance_logs(self, callback: ChangeCallback) -> Optional[Subscription]:
        return self.db.subscribe("maintenance_logs", callback)

    def subscribe_to_maintenance_alerts(self, callback: ChangeCallback) -> Optional[Subscription]:
        return self.db.subscribe("maintenance_alerts", callback)
