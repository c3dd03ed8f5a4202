"""FastAPI dependencies built from application state."""

from typing import Optional

from fastapi import Depends, Request

from assetflow.core.events import EventPublisher
from assetflow.core.workflow_engine import WorkflowEngine
from assetflow.services import ActivityService, NotificationService, UserService, WorkflowService
from assetflow.storage.client import DataClient


def get_data_client(request: Request) -> DataClient:
    """Dependency to get the data client created at startup."""
    return request.app.state.data_client


def get_publisher(request: Request) -> Optional[EventPublisher]:
    return getattr(request.app.state, "dispatcher", None)


def get_workflow_service(db: DataClient = Depends(get_data_client)) -> WorkflowService:
    return WorkflowService(db)


def get_user_service(db: DataClient = Depends(get_data_client)) -> UserService:
    return UserService(db)


def get_activity_service(db: DataClient = Depends(get_data_client)) -> ActivityService:
    return ActivityService(db)


def get_notification_service(db: DataClient = Depends(get_data_client)) -> NotificationService:
    return NotificationService(db)


def get_workflow_engine(
    workflow_service: WorkflowService = Depends(get_workflow_service),
    activity_service: ActivityService = Depends(get_activity_service),
    user_service: UserService = Depends(get_user_service),
    publisher: Optional[EventPublisher] = Depends(get_publisher),
) -> WorkflowEngine:
    """Dependency to get a workflow engine wired to the shared dispatcher."""
    return WorkflowEngine(workflow_service, activity_service, user_service, publisher)
