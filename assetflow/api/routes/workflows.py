"""Workflow template routes."""

from fastapi import APIRouter, Depends, HTTPException, status

from assetflow.api.dependencies import get_workflow_service
from assetflow.api.errors import http_exception, unwrap_or_raise
from assetflow.api.schemas import (
    WorkflowCreateRequest,
    WorkflowListResponse,
    WorkflowResponse,
)
from assetflow.core.template_registry import register_template
from assetflow.dsl.parser import TemplateParser
from assetflow.errors import AssetflowError
from assetflow.services.base import eq
from assetflow.services.workflows import WorkflowService

router = APIRouter(prefix="/workflows", tags=["workflows"])


async def _with_steps(service: WorkflowService, workflow: dict) -> WorkflowResponse:
    steps = unwrap_or_raise(await service.get_workflow_steps(workflow["id"]))
    return WorkflowResponse.model_validate({**workflow, "steps": steps})


@router.post("", response_model=WorkflowResponse, status_code=status.HTTP_201_CREATED)
async def create_workflow(
    request: WorkflowCreateRequest,
    service: WorkflowService = Depends(get_workflow_service),
):
    """Create a workflow template from YAML, replacing one with the same name."""
    try:
        template = TemplateParser.parse_yaml(request.definition_yaml)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    try:
        _, workflow = await register_template(template, service, created_by=request.created_by)
    except AssetflowError as e:
        raise http_exception(e) from e
    return await _with_steps(service, workflow)


@router.get("", response_model=WorkflowListResponse)
async def list_workflows(
    active_only: bool = False,
    service: WorkflowService = Depends(get_workflow_service),
):
    """List workflow templates."""
    options = {"filters": [eq("is_active", True)]} if active_only else None
    workflows = unwrap_or_raise(await service.get_all_workflows(options))
    return WorkflowListResponse(
        workflows=[WorkflowResponse.model_validate(w) for w in workflows],
        total=len(workflows),
    )


@router.get("/{workflow_id}", response_model=WorkflowResponse)
async def get_workflow(
    workflow_id: str,
    service: WorkflowService = Depends(get_workflow_service),
):
    """Get a workflow template with its ordered steps."""
    workflow = unwrap_or_raise(await service.get_workflow_by_id(workflow_id), not_found="Workflow not found")
    return await _with_steps(service, workflow)
