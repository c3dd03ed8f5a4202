"""Domain accessor services over the data client."""

from assetflow.services.activities import ActivityService
from assetflow.services.documents import DocumentService
from assetflow.services.inventory import InventoryService
from assetflow.services.maintenance import MaintenanceService
from assetflow.services.notifications import NotificationService
from assetflow.services.procurement import ProcurementService
from assetflow.services.users import UserService
from assetflow.services.workflows import WorkflowService

__all__ = [
    "ActivityService",
    "DocumentService",
    "InventoryService",
    "MaintenanceService",
    "NotificationService",
    "ProcurementService",
    "UserService",
    "WorkflowService",
]
