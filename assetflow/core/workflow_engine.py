"""Sequential multi-step approval coordinator.

An instance starts ``pending`` at step 1. Approving the current step either
advances ``current_step`` by one or, on the last step, completes the
instance. Rejection terminates the instance from any step. Every public
method returns a :class:`QueryResult`; errors never cross the method
boundary.
"""

import logging
from datetime import datetime
from typing import Any, Awaitable, Dict, List, Optional

from assetflow.core.approval_rules import can_role_approve
from assetflow.core.events import EventPublisher, WorkflowEvent, WorkflowEventType
from assetflow.core.state_machine import InstanceStatus, StepStatus, is_terminal, plan_approval
from assetflow.errors import (
    AssetflowError,
    AuthorizationError,
    ConfigurationError,
    ConflictError,
    NotFoundError,
)
from assetflow.services.activities import ActivityService
from assetflow.services.users import UserService
from assetflow.services.workflows import WorkflowService
from assetflow.storage.client import QueryResult

log = logging.getLogger(__name__)

INSTANCE_ENTITY = "workflow_instance"


class WorkflowEngine:
    """Coordinates initiation, approval and rejection of workflow instances."""

    def __init__(
        self,
        workflow_service: WorkflowService,
        activity_service: ActivityService,
        user_service: UserService,
        publisher: Optional[EventPublisher] = None,
    ):
        """Initialize engine with its collaborators.

        Args:
            workflow_service: Accessor for templates, instances and approvals
            activity_service: Accessor used for audit entries
            user_service: Accessor used to look up approver roles
            publisher: Sink for notification events; events are dropped when
                omitted
        """
        self.workflow_service = workflow_service
        self.activity_service = activity_service
        self.user_service = user_service
        self.publisher = publisher

    async def initiate_workflow(
        self,
        request_type: str,
        request_data: Dict[str, Any],
        requested_by: str,
        workflow_template_id: Optional[str] = None,
    ) -> QueryResult:
        """Create a pending instance at step 1.

        Args:
            request_type: e.g. inventory_request, procurement_request
            request_data: Request payload stored in the instance metadata
            requested_by: Initiating user ID
            workflow_template_id: Template to use instead of the active
                template for ``request_type``

        Returns:
            QueryResult with the created instance row
        """
        return await self._guarded("initiating workflow", self._initiate(
            request_type, request_data, requested_by, workflow_template_id
        ))

    async def approve_step(self, instance_id: str, approver_id: str, comments: str = "") -> QueryResult:
        """Approve the current step of an instance.

        Returns:
            QueryResult with ``{"approved", "step", "is_completed"}``
        """
        return await self._guarded("approving workflow step", self._approve(instance_id, approver_id, comments))

    async def reject_workflow(self, instance_id: str, approver_id: str, reason: str) -> QueryResult:
        """Reject an instance at whatever step it is on.

        Returns:
            QueryResult with ``{"rejected", "reason"}``
        """
        return await self._guarded("rejecting workflow", self._reject(instance_id, approver_id, reason))

    async def get_workflow_status(self, instance_id: str) -> QueryResult:
        return await self._guarded("getting workflow status", self._load_instance(instance_id))

    async def get_user_pending_approvals(self, user_id: str, role: Optional[str]) -> QueryResult:
        """Pending instances initiated by ``user_id`` whose current step ``role`` may approve.

        The lookup is by initiator, not by assigned approver.
        """
        return await self._guarded("getting pending approvals", self._pending_approvals(user_id, role))

    async def can_user_approve_step(self, user_id: str, step: Dict[str, Any]) -> bool:
        """Check a user against a step's approver requirement.

        A required user ID takes precedence over a required role. A step
        with neither requirement may be approved by anyone.
        """
        if step.get("required_user_id"):
            return step["required_user_id"] == user_id
        if step.get("required_role"):
            role = await self.user_service.get_user_role(user_id)
            return role is not None and role == step["required_role"]
        return True

    async def _guarded(self, action: str, operation: Awaitable[Any]) -> QueryResult:
        try:
            return QueryResult(data=await operation)
        except AssetflowError as e:
            log.warning(f"Error {action}: {e.code} {e.message}")
            return QueryResult.failure(e)
        except Exception as e:
            log.exception(f"Unexpected error {action}: {e}")
            return QueryResult(data=None, error=str(e), error_code="ERROR")

    async def _initiate(
        self,
        request_type: str,
        request_data: Dict[str, Any],
        requested_by: str,
        workflow_template_id: Optional[str],
    ) -> Dict[str, Any]:
        template = await self._resolve_template(request_type, workflow_template_id)
        steps = await self._load_steps(template["id"])
        if not steps:
            raise ConfigurationError(
                f"Workflow {template.get('name', template['id'])} has no steps defined",
                {"workflow_id": template["id"]},
            )

        request_id = request_data.get("id")
        instance = (await self.workflow_service.create_workflow_instance(
            {
                "workflow_id": template["id"],
                "request_type": request_type,
                "request_id": str(request_id) if request_id is not None else None,
                "status": InstanceStatus.PENDING.value,
                "current_step": 1,
                "total_steps": len(steps),
                "initiated_by": requested_by,
                "metadata": {
                    "request_data": request_data,
                    "initiated_at": datetime.utcnow().isoformat(),
                },
            }
        )).unwrap()
        log.info(f"Initiated {request_type} workflow {instance['id']} with {len(steps)} steps")

        await self._audit(
            requested_by,
            "WORKFLOW_INITIATED",
            f"Initiated {request_type} workflow",
            instance["id"],
            {"workflow_type": request_type, "request_data": request_data},
        )
        self._publish(WorkflowEventType.APPROVAL_REQUIRED, instance, step=steps[0], actor_id=requested_by)
        return instance

    async def _approve(self, instance_id: str, approver_id: str, comments: str) -> Dict[str, Any]:
        instance = await self._load_instance(instance_id)
        current_step = instance["current_step"]
        steps = await self._load_steps(instance["workflow_id"])
        step = self._find_step(steps, current_step)
        if step is None:
            raise NotFoundError(
                f"Step {current_step} of workflow instance {instance_id} not found",
                {"instance_id": instance_id, "step": current_step},
            )

        if not await self.can_user_approve_step(approver_id, step):
            raise AuthorizationError(
                "User not authorized to approve this step",
                {"user_id": approver_id, "step": current_step},
            )

        if is_terminal(instance["status"]):
            raise ConflictError(
                f"Workflow instance {instance_id} is already {instance['status']}",
                {"instance_id": instance_id, "status": instance["status"]},
            )

        plan = plan_approval(current_step, instance["total_steps"])
        update = plan.instance_update()
        if plan.is_completed:
            update["metadata"] = {
                **(instance.get("metadata") or {}),
                "completed_by": approver_id,
                "completed_at": plan.completed_at.isoformat(),
            }

        updated = (await self.workflow_service.update_workflow_instance(
            instance_id,
            update,
            expected={"current_step": current_step, "status": InstanceStatus.PENDING.value},
        )).unwrap()
        if updated is None:
            raise ConflictError(
                f"Workflow instance {instance_id} changed while approving step {current_step}",
                {"instance_id": instance_id, "step": current_step},
            )

        (await self.workflow_service.record_step_outcome(
            instance_id, step, approver_id, StepStatus.APPROVED.value, comments
        )).unwrap()
        log.info(
            f"Step {current_step}/{instance['total_steps']} of workflow {instance_id} approved by {approver_id}"
        )

        await self._audit(
            approver_id,
            "WORKFLOW_APPROVED",
            f"Approved step {current_step} of {instance['request_type']} workflow",
            instance_id,
            {"step": current_step, "comments": comments, "is_completed": plan.is_completed},
        )

        if plan.is_completed:
            self._publish(WorkflowEventType.WORKFLOW_COMPLETED, updated, actor_id=approver_id)
        else:
            next_step = self._find_step(steps, plan.next_step)
            if next_step is not None:
                self._publish(WorkflowEventType.APPROVAL_REQUIRED, updated, step=next_step, actor_id=approver_id)

        return {"approved": True, "step": current_step, "is_completed": plan.is_completed}

    async def _reject(self, instance_id: str, approver_id: str, reason: str) -> Dict[str, Any]:
        instance = await self._load_instance(instance_id)
        now = datetime.utcnow()
        metadata = {
            **(instance.get("metadata") or {}),
            "rejected_by": approver_id,
            "rejection_reason": reason,
            "rejected_at": now.isoformat(),
        }
        updated = (await self.workflow_service.update_workflow_instance(
            instance_id,
            {"status": InstanceStatus.REJECTED.value, "completed_at": now, "metadata": metadata},
        )).unwrap()
        if updated is None:
            raise NotFoundError(f"Workflow instance {instance_id} not found", {"instance_id": instance_id})

        (await self.workflow_service.record_step_outcome(
            instance_id,
            {"step_order": instance["current_step"]},
            approver_id,
            StepStatus.REJECTED.value,
            reason,
        )).unwrap()
        log.info(f"Workflow {instance_id} rejected by {approver_id} at step {instance['current_step']}")

        await self._audit(
            approver_id,
            "WORKFLOW_REJECTED",
            f"Rejected {instance['request_type']} workflow {instance_id}",
            instance_id,
            {"reason": reason, "step": instance["current_step"]},
        )
        self._publish(WorkflowEventType.WORKFLOW_REJECTED, updated, reason=reason, actor_id=approver_id)
        return {"rejected": True, "reason": reason}

    async def _pending_approvals(self, user_id: str, role: Optional[str]) -> List[Dict[str, Any]]:
        instances = (await self.workflow_service.get_workflow_instances_by_user(user_id)).unwrap() or []
        return [
            instance
            for instance in instances
            if instance["status"] == InstanceStatus.PENDING.value
            and instance["current_step"] <= instance["total_steps"]
            and can_role_approve(role, instance["request_type"], instance["current_step"])
        ]

    async def _resolve_template(self, request_type: str, workflow_template_id: Optional[str]) -> Dict[str, Any]:
        if workflow_template_id:
            template = (await self.workflow_service.get_workflow_by_id(workflow_template_id)).unwrap()
            if template is None:
                raise NotFoundError(
                    f"Workflow template {workflow_template_id} not found",
                    {"workflow_id": workflow_template_id},
                )
            return template

        template = (await self.workflow_service.get_active_workflow_for_type(request_type)).unwrap()
        if template is None:
            raise NotFoundError(
                f"No active workflow found for type: {request_type}",
                {"request_type": request_type},
            )
        return template

    async def _load_instance(self, instance_id: str) -> Dict[str, Any]:
        instance = (await self.workflow_service.get_workflow_instance_by_id(instance_id)).unwrap()
        if instance is None:
            raise NotFoundError(f"Workflow instance {instance_id} not found", {"instance_id": instance_id})
        return instance

    async def _load_steps(self, workflow_id: str) -> List[Dict[str, Any]]:
        return (await self.workflow_service.get_workflow_steps(workflow_id)).unwrap() or []

    @staticmethod
    def _find_step(steps: List[Dict[str, Any]], step_order: int) -> Optional[Dict[str, Any]]:
        return next((step for step in steps if step["step_order"] == step_order), None)

    async def _audit(
        self,
        user_id: str,
        action: str,
        description: str,
        instance_id: str,
        metadata: Dict[str, Any],
    ) -> None:
        try:
            result = await self.activity_service.log_activity(
                {
                    "user_id": user_id,
                    "action": action,
                    "description": description,
                    "entity_type": INSTANCE_ENTITY,
                    "entity_id": instance_id,
                    "metadata": metadata,
                }
            )
        except Exception as e:
            log.error(f"Failed to write {action} audit entry for {instance_id}: {e}")
            return
        if not result.ok:
            log.error(f"Failed to write {action} audit entry for {instance_id}: {result.error}")

    def _publish(
        self,
        event_type: WorkflowEventType,
        instance: Dict[str, Any],
        step: Optional[Dict[str, Any]] = None,
        reason: Optional[str] = None,
        actor_id: Optional[str] = None,
    ) -> None:
        if self.publisher is None:
            log.debug(f"No publisher configured, dropping {event_type.value} for {instance.get('id')}")
            return
        event = WorkflowEvent(event_type=event_type, instance=instance, step=step, reason=reason, actor_id=actor_id)
        try:
            self.publisher.publish(event)
        except Exception as e:
            log.error(f"Failed to publish {event_type.value} for {instance.get('id')}: {e}")
