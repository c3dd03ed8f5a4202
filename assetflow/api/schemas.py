"""Pydantic schemas for API requests and responses."""

from typing import Optional, Dict, Any, List
from datetime import datetime
from pydantic import BaseModel, Field


# Workflow Schemas
class WorkflowCreateRequest(BaseModel):
    """Request to create or replace a workflow template."""

    definition_yaml: str = Field(..., description="YAML workflow template")
    created_by: Optional[str] = None


class StepResponse(BaseModel):
    """Workflow step response."""

    id: str
    step_order: int
    step_name: str
    description: Optional[str] = None
    required_role: Optional[str] = None
    required_user_id: Optional[str] = None


class WorkflowResponse(BaseModel):
    """Workflow template response."""

    id: str
    name: str
    workflow_type: str
    description: Optional[str] = None
    is_active: bool
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    steps: List[StepResponse] = Field(default_factory=list)


class WorkflowListResponse(BaseModel):
    """List of workflows response."""

    workflows: List[WorkflowResponse]
    total: int


# Instance Schemas
class InitiateWorkflowRequest(BaseModel):
    """Request to start a workflow instance."""

    request_type: str
    request_data: Dict[str, Any] = Field(default_factory=dict)
    requested_by: str
    workflow_template_id: Optional[str] = None


class InstanceResponse(BaseModel):
    """Workflow instance response."""

    id: str
    workflow_id: str
    request_type: str
    request_id: Optional[str] = None
    status: str
    current_step: int
    total_steps: int
    initiated_by: str
    initiated_at: datetime
    completed_at: Optional[datetime] = None
    metadata: Optional[Dict[str, Any]] = None


class InstanceListResponse(BaseModel):
    """List of workflow instances response."""

    instances: List[InstanceResponse]
    total: int


class ApproveStepRequest(BaseModel):
    """Request to approve the current step."""

    approver_id: str
    comments: str = ""


class RejectWorkflowRequest(BaseModel):
    """Request to reject an instance."""

    approver_id: str
    reason: str = Field(..., min_length=1)


class ApprovalResultResponse(BaseModel):
    approved: bool
    step: int
    is_completed: bool


class RejectionResultResponse(BaseModel):
    rejected: bool
    reason: str


class StepOutcomeResponse(BaseModel):
    """Recorded outcome of one step."""

    id: str
    step_order: int
    step_id: Optional[str] = None
    approved_by: Optional[str] = None
    approval_status: str
    approval_notes: Optional[str] = None
    approved_at: Optional[datetime] = None


class StepOutcomeListResponse(BaseModel):
    approvals: List[StepOutcomeResponse]
    total: int


# Notification Schemas
class NotificationResponse(BaseModel):
    """Notification response."""

    id: str
    user_id: str
    type: str
    title: str
    message: str
    priority: str
    is_read: bool
    read_at: Optional[datetime] = None
    related_entity_type: Optional[str] = None
    related_entity_id: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    created_at: datetime


class NotificationListResponse(BaseModel):
    notifications: List[NotificationResponse]
    total: int


class UnreadCountResponse(BaseModel):
    user_id: str
    unread: int


class MarkAllReadResponse(BaseModel):
    user_id: str
    updated: int
