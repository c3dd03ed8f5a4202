"""Workflow instance routes."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from assetflow.api.dependencies import get_workflow_engine, get_workflow_service
from assetflow.api.errors import unwrap_or_raise
from assetflow.api.schemas import (
    ApprovalResultResponse,
    ApproveStepRequest,
    InitiateWorkflowRequest,
    InstanceListResponse,
    InstanceResponse,
    RejectionResultResponse,
    RejectWorkflowRequest,
    StepOutcomeListResponse,
    StepOutcomeResponse,
)
from assetflow.core.state_machine import InstanceStatus
from assetflow.core.workflow_engine import WorkflowEngine
from assetflow.services.workflows import WorkflowService

router = APIRouter(prefix="/workflow-instances", tags=["workflow-instances"])


def _instance_list(instances: list) -> InstanceListResponse:
    return InstanceListResponse(
        instances=[InstanceResponse.model_validate(i) for i in instances],
        total=len(instances),
    )


@router.post("", response_model=InstanceResponse, status_code=status.HTTP_201_CREATED)
async def initiate_workflow(
    request: InitiateWorkflowRequest,
    engine: WorkflowEngine = Depends(get_workflow_engine),
):
    """Start a workflow instance for a request."""
    result = await engine.initiate_workflow(
        request.request_type,
        request.request_data,
        request.requested_by,
        request.workflow_template_id,
    )
    return InstanceResponse.model_validate(unwrap_or_raise(result))


@router.get("", response_model=InstanceListResponse)
async def list_instances(
    status_filter: Optional[InstanceStatus] = Query(None, alias="status", description="Filter by status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    service: WorkflowService = Depends(get_workflow_service),
):
    """List workflow instances, newest first."""
    options = {"limit": limit, "offset": skip}
    if status_filter:
        options["filters"] = [{"column": "status", "operator": "eq", "value": status_filter.value}]
    return _instance_list(unwrap_or_raise(await service.get_all_workflow_instances(options)))


@router.get("/pending", response_model=InstanceListResponse)
async def list_pending_approvals(
    user_id: str,
    role: Optional[str] = None,
    engine: WorkflowEngine = Depends(get_workflow_engine),
):
    """Pending instances initiated by ``user_id`` that ``role`` may act on."""
    return _instance_list(unwrap_or_raise(await engine.get_user_pending_approvals(user_id, role)))


@router.get("/{instance_id}", response_model=InstanceResponse)
async def get_instance(
    instance_id: str,
    engine: WorkflowEngine = Depends(get_workflow_engine),
):
    """Get workflow instance status."""
    return InstanceResponse.model_validate(unwrap_or_raise(await engine.get_workflow_status(instance_id)))


@router.get("/{instance_id}/approvals", response_model=StepOutcomeListResponse)
async def list_step_outcomes(
    instance_id: str,
    service: WorkflowService = Depends(get_workflow_service),
):
    """List recorded step outcomes of an instance."""
    approvals = unwrap_or_raise(await service.get_workflow_approvals(instance_id))
    return StepOutcomeListResponse(
        approvals=[StepOutcomeResponse.model_validate(a) for a in approvals],
        total=len(approvals),
    )


@router.post("/{instance_id}/approve", response_model=ApprovalResultResponse)
async def approve_step(
    instance_id: str,
    request: ApproveStepRequest,
    engine: WorkflowEngine = Depends(get_workflow_engine),
):
    """Approve the current step."""
    result = await engine.approve_step(instance_id, request.approver_id, request.comments)
    return ApprovalResultResponse.model_validate(unwrap_or_raise(result))


@router.post("/{instance_id}/reject", response_model=RejectionResultResponse)
async def reject_workflow(
    instance_id: str,
    request: RejectWorkflowRequest,
    engine: WorkflowEngine = Depends(get_workflow_engine),
):
    """Reject the instance."""
    result = await engine.reject_workflow(instance_id, request.approver_id, request.reason)
    return RejectionResultResponse.model_validate(unwrap_or_raise(result))
