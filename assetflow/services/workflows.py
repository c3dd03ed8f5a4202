"""Workflow template, instance and approval service."""

from datetime import datetime
from typing import Any, Dict, Optional

from assetflow.errors import AssetflowError
from assetflow.services.base import BaseService, OptionsLike, eq, merge_options
from assetflow.storage.client import (
    ChangeCallback,
    OrderBy,
    QueryOptions,
    QueryResult,
    Subscription,
)

WORKFLOW_COLUMNS = "id, name, description, workflow_type, is_active, created_by, created_at, updated_at"
NEWEST_INITIATED_FIRST = OrderBy(column="initiated_at", ascending=False)
NEWEST_REQUESTED_FIRST = OrderBy(column="requested_at", ascending=False)
BY_STEP_ORDER = OrderBy(column="step_order")


class WorkflowService(BaseService):
    """Accessors for workflow templates, steps, instances and approvals."""

    # Templates

    async def get_all_workflows(self, options: OptionsLike = None) -> QueryResult:
        defaults = {
            "columns": WORKFLOW_COLUMNS,
            "order_by": {"column": "name", "ascending": True},
        }
        return await self.db.query("workflows", "select", merge_options(defaults, options))

    async def get_workflow_by_id(self, workflow_id: str) -> QueryResult:
        return await self._get_one("workflows", "id", workflow_id)

    async def get_workflow_by_name(self, name: str) -> QueryResult:
        return await self._get_one("workflows", "name", name)

    async def get_active_workflow_for_type(self, workflow_type: str) -> QueryResult:
        """Return the active template for a request type, or ``None``."""
        result = await self._select(
            "workflows",
            [eq("workflow_type", workflow_type), eq("is_active", True)],
            OrderBy(column="created_at", ascending=False),
            limit=1,
        )
        return result.first()

    async def create_workflow(self, workflow_data: Dict[str, Any]) -> QueryResult:
        return await self._insert("workflows", workflow_data, stamps=("created_at", "updated_at"))

    async def update_workflow(self, workflow_id: str, update_data: Dict[str, Any]) -> QueryResult:
        return await self._update("workflows", workflow_id, update_data)

    # Steps

    async def get_workflow_steps(self, workflow_id: str) -> QueryResult:
        return await self._select("workflow_steps", [eq("workflow_id", workflow_id)], BY_STEP_ORDER)

    async def create_workflow_step(self, step_data: Dict[str, Any]) -> QueryResult:
        return await self._insert("workflow_steps", step_data)

    async def delete_workflow_steps(self, workflow_id: str) -> QueryResult:
        return await self.db.query(
            "workflow_steps",
            "delete",
            QueryOptions(filters=[eq("workflow_id", workflow_id)]),
        )

    # Instances

    async def get_all_workflow_instances(self, options: OptionsLike = None) -> QueryResult:
        defaults = {"order_by": {"column": "initiated_at", "ascending": False}}
        return await self.db.query("workflow_instances", "select", merge_options(defaults, options))

    async def get_workflow_instance_by_id(self, instance_id: str) -> QueryResult:
        return await self._get_one("workflow_instances", "id", instance_id)

    async def create_workflow_instance(self, instance_data: Dict[str, Any]) -> QueryResult:
        return await self._insert(
            "workflow_instances",
            instance_data,
            stamps=("initiated_at", "created_at", "updated_at"),
        )

    async def update_workflow_instance(
        self,
        instance_id: str,
        update_data: Dict[str, Any],
        expected: Optional[Dict[str, Any]] = None,
    ) -> QueryResult:
        """Update an instance.

        Args:
            instance_id: Instance ID
            update_data: Columns to write
            expected: Column values the row must still hold for the write
                to apply

        Returns:
            QueryResult with the updated row, or ``data=None`` when no row
            matched the id and the expected values
        """
        guards = [eq(column, value) for column, value in (expected or {}).items()]
        return await self._update("workflow_instances", instance_id, update_data, filters=guards)

    async def get_workflow_instances_by_status(self, status: str) -> QueryResult:
        return await self._select("workflow_instances", [eq("status", status)], NEWEST_INITIATED_FIRST)

    async def get_workflow_instances_by_user(self, user_id: str) -> QueryResult:
        return await self._select("workflow_instances", [eq("initiated_by", user_id)], NEWEST_INITIATED_FIRST)

    # Step outcomes

    async def get_workflow_approvals(self, instance_id: str) -> QueryResult:
        return await self._select(
            "workflow_approvals",
            [eq("workflow_instance_id", instance_id)],
            BY_STEP_ORDER,
        )

    async def create_workflow_approval(self, approval_data: Dict[str, Any]) -> QueryResult:
        return await self._insert("workflow_approvals", approval_data)

    async def record_step_outcome(
        self,
        instance_id: str,
        step: Dict[str, Any],
        approved_by: str,
        status: str,
        notes: Optional[str] = None,
    ) -> QueryResult:
        """Store the decision taken on one step of an instance."""
        now = datetime.utcnow()
        return await self.create_workflow_approval(
            {
                "workflow_instance_id": instance_id,
                "step_id": step.get("id"),
                "step_order": step["step_order"],
                "approved_by": approved_by,
                "approval_status": status,
                "approval_notes": notes,
                "approved_at": now,
                "updated_at": now,
            }
        )

    # Two-level approval requests

    async def get_all_approval_requests(self, options: OptionsLike = None) -> QueryResult:
        defaults = {"order_by": {"column": "requested_at", "ascending": False}}
        return await self.db.query("approval_requests", "select", merge_options(defaults, options))

    async def get_approval_request_by_id(self, request_id: str) -> QueryResult:
        return await self._get_one("approval_requests", "id", request_id)

    async def create_approval_request(self, request_data: Dict[str, Any]) -> QueryResult:
        return await self._insert(
            "approval_requests",
            request_data,
            stamps=("requested_at", "created_at", "updated_at"),
        )

    async def update_approval_request(self, request_id: str, update_data: Dict[str, Any]) -> QueryResult:
        return await self._update("approval_requests", request_id, update_data)

    async def manager_approve_request(self, request_id: str, manager_id: str) -> QueryResult:
        return await self.update_approval_request(
            request_id,
            {
                "status": "manager_approved",
                "manager_approved_by": manager_id,
                "manager_approved_at": datetime.utcnow(),
            },
        )

    async def project_manager_approve_request(self, request_id: str, project_manager_id: str) -> QueryResult:
        return await self.update_approval_request(
            request_id,
            {
                "status": "approved",
                "project_manager_approved_by": project_manager_id,
                "project_manager_approved_at": datetime.utcnow(),
            },
        )

    async def reject_request(self, request_id: str, rejected_by: str, rejection_reason: str) -> QueryResult:
        return await self.update_approval_request(
            request_id,
            {
                "status": "rejected",
                "rejected_by": rejected_by,
                "rejection_reason": rejection_reason,
            },
        )

    async def get_requests_by_status(self, status: str) -> QueryResult:
        return await self._select("approval_requests", [eq("status", status)], NEWEST_REQUESTED_FIRST)

    async def get_requests_by_user(self, user_id: str) -> QueryResult:
        return await self._select("approval_requests", [eq("requested_by", user_id)], NEWEST_REQUESTED_FIRST)

    async def get_workflow_stats(self) -> QueryResult:
        try:
            counts: Dict[str, int] = {"total_instances": await self._count("workflow_instances")}
            for status in ("pending", "approved", "rejected"):
                counts[f"{status}_instances"] = await self._count(
                    "workflow_instances",
                    [eq("status", status)],
                )
        except AssetflowError as e:
            return QueryResult.failure(e)
        return QueryResult(data=counts)

    def subscribe_to_workflow_instances(self, callback: ChangeCallback) -> Optional[Subscription]:
        return self.db.subscribe("workflow_instances", callback)

    def subscribe_to_workflow_approvals(self, callback: ChangeCallback) -> Optional[Subscription]:
        return self.db.subscribe("workflow_approvals", callback)

    def subscribe_to_approval_requests(self, callback: ChangeCallback) -> Optional[Subscription]:
        return self.db.subscribe("approval_requests", callback)
