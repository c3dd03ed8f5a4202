"""Asynchronous delivery of workflow notifications.

The coordinator publishes :class:`WorkflowEvent` objects onto an
``asyncio.Queue``; a consumer task turns them into rows in the
notifications table. Delivery failures are logged and never reach the
coordinator.
"""

import asyncio
import logging
from typing import List, Optional

from assetflow.core.events import EventPublisher, WorkflowEvent, WorkflowEventType
from assetflow.services.notifications import NotificationService
from assetflow.services.users import UserService

log = logging.getLogger(__name__)


class NotificationDispatcher(EventPublisher):
    """Queue-backed publisher that creates notifications for workflow events."""

    def __init__(
        self,
        notification_service: NotificationService,
        user_service: UserService,
        max_queue_size: int = 1000,
    ):
        """Initialize dispatcher with the services it writes through."""
        self.notification_service = notification_service
        self.user_service = user_service
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=max_queue_size)
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def publish(self, event: WorkflowEvent) -> None:
        try:
            self.queue.put_nowait(event)
        except asyncio.QueueFull:
            log.warning(
                f"Notification queue full, dropping {event.event_type.value} "
                f"for instance {event.instance.get('id')}"
            )

    async def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._consume())
        log.info("Notification dispatcher started")

    async def stop(self) -> None:
        """Deliver what is already queued, then stop the consumer."""
        if self._task is None:
            return
        await self.queue.join()
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        log.info("Notification dispatcher stopped")

    async def drain(self) -> int:
        """Process queued events inline; returns how many were handled."""
        handled = 0
        while True:
            try:
                event = self.queue.get_nowait()
            except asyncio.QueueEmpty:
                return handled
            try:
                await self.dispatch(event)
            finally:
                self.queue.task_done()
            handled += 1

    async def _consume(self) -> None:
        while True:
            event = await self.queue.get()
            try:
                await self.dispatch(event)
            finally:
                self.queue.task_done()

    async def dispatch(self, event: WorkflowEvent) -> None:
        """Create the notifications for one event."""
        instance = event.instance
        try:
            if event.event_type == WorkflowEventType.APPROVAL_REQUIRED:
                for approver_id in await self._approvers_for(event):
                    result = await self.notification_service.create_workflow_approval_notification(
                        approver_id, instance, event.step
                    )
                    self._check(result, event)
            elif event.event_type == WorkflowEventType.WORKFLOW_COMPLETED:
                result = await self.notification_service.create_workflow_completion_notification(
                    instance["initiated_by"], instance
                )
                self._check(result, event)
            elif event.event_type == WorkflowEventType.WORKFLOW_REJECTED:
                result = await self.notification_service.create_workflow_rejection_notification(
                    instance["initiated_by"], instance, event.reason or ""
                )
                self._check(result, event)
        except Exception as e:
            log.error(f"Failed to deliver {event.event_type.value} for instance {instance.get('id')}: {e}")

    async def _approvers_for(self, event: WorkflowEvent) -> List[str]:
        step = event.step or {}
        if step.get("required_user_id"):
            return [step["required_user_id"]]
        role = step.get("required_role")
        if not role:
            log.info(f"Step {step.get('step_order')} of instance {event.instance.get('id')} has no assigned approver")
            return []
        users = await self.user_service.get_users_by_role(role, active_only=True)
        if not users.ok:
            log.error(f"Could not resolve approvers with role {role}: {users.error}")
            return []
        return [user["id"] for user in users.data]

    @staticmethod
    def _check(result, event: WorkflowEvent) -> None:
        if not result.ok:
            log.error(f"Notification for {event.event_type.value} was not stored: {result.error}")
