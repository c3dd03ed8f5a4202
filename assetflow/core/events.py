"""Outbound workflow events published by the coordinator."""

from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class WorkflowEventType(str, Enum):
    """Kinds of workflow events."""

    APPROVAL_REQUIRED = "approval_required"
    WORKFLOW_COMPLETED = "workflow_completed"
    WORKFLOW_REJECTED = "workflow_rejected"


class WorkflowEvent(BaseModel):
    """Snapshot of an instance at the moment something happened to it."""

    event_type: WorkflowEventType
    instance: Dict[str, Any]
    step: Optional[Dict[str, Any]] = None
    reason: Optional[str] = None
    actor_id: Optional[str] = None
    occurred_at: datetime = Field(default_factory=datetime.utcnow)


class EventPublisher(ABC):
    """Abstract sink for workflow events."""

    @abstractmethod
    def publish(self, event: WorkflowEvent) -> None:
        """Hand off an event without waiting for it to be processed."""
        pass


class RecordingPublisher(EventPublisher):
    """Publisher that keeps events in memory."""

    def __init__(self):
        self.events: List[WorkflowEvent] = []

    def publish(self, event: WorkflowEvent) -> None:
        self.events.append(event)
