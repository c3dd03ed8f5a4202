"""Pytest configuration and fixtures."""

import pytest
import pytest_asyncio
import yaml
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

from assetflow.core.events import RecordingPublisher
from assetflow.core.template_registry import register_template
from assetflow.core.workflow_engine import WorkflowEngine
from assetflow.dsl.parser import TemplateParser
from assetflow.services import (
    ActivityService,
    DocumentService,
    InventoryService,
    MaintenanceService,
    NotificationService,
    ProcurementService,
    UserService,
    WorkflowService,
)
from assetflow.storage.client import DataClient, QueryResult
from assetflow.storage.database import create_engine, create_tables

TEMPLATES_DIR = Path(__file__).parent.parent / "workflows"


@pytest.fixture
def sample_templates():
    """Load sample workflow templates."""
    fixtures_path = Path(__file__).parent / "fixtures" / "sample_templates.yaml"
    with open(fixtures_path) as f:
        return yaml.safe_load(f)


@pytest.fixture
def templates_dir():
    return TEMPLATES_DIR


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """SQLite database with the full schema."""
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'assetflow.db'}")
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def data_client(db_engine):
    client = DataClient(db_engine)
    yield client
    client.unsubscribe_all()


@pytest.fixture
def user_service(data_client):
    return UserService(data_client)


@pytest.fixture
def workflow_service(data_client):
    return WorkflowService(data_client)


@pytest.fixture
def activity_service(data_client):
    return ActivityService(data_client)


@pytest.fixture
def notification_service(data_client):
    return NotificationService(data_client)


@pytest.fixture
def document_service(data_client):
    return DocumentService(data_client)


@pytest.fixture
def maintenance_service(data_client):
    return MaintenanceService(data_client)


@pytest.fixture
def inventory_service(data_client):
    return InventoryService(data_client)


@pytest.fixture
def procurement_service(data_client):
    return ProcurementService(data_client)


@pytest.fixture
def publisher():
    """Publisher that records events instead of delivering them."""
    return RecordingPublisher()


@pytest.fixture
def workflow_engine(workflow_service, activity_service, user_service, publisher):
    return WorkflowEngine(workflow_service, activity_service, user_service, publisher)


@pytest_asyncio.fixture
async def users(user_service):
    """One active user per role, keyed by a short name."""
    rows = {}
    for key, username, role in [
        ("employee", "emma", "Employee"),
        ("manager", "mark", "Manager"),
        ("project_manager", "priya", "Project Manager"),
        ("admin", "ada", "Admin"),
    ]:
        result = await user_service.create_user(
            {
                "username": username,
                "email": f"{username}@example.com",
                "full_name": username.capitalize(),
                "role": role,
                "is_active": True,
            }
        )
        rows[key] = result.unwrap()
    return rows


@pytest_asyncio.fixture
async def procurement_template(workflow_service):
    """The shipped procurement_request template, registered."""
    template = TemplateParser.parse_file(TEMPLATES_DIR / "procurement_request.yaml")
    _, workflow = await register_template(template, workflow_service)
    return workflow


@pytest.fixture
def mock_workflow_service():
    """Mock workflow service."""
    service = AsyncMock(spec=WorkflowService)
    service.get_workflow_by_id = AsyncMock(return_value=QueryResult(data=None))
    service.get_active_workflow_for_type = AsyncMock(return_value=QueryResult(data=None))
    service.get_workflow_steps = AsyncMock(return_value=QueryResult(data=[]))
    service.get_workflow_instance_by_id = AsyncMock(return_value=QueryResult(data=None))
    service.get_workflow_instances_by_user = AsyncMock(return_value=QueryResult(data=[]))
    service.create_workflow_instance = AsyncMock()
    service.update_workflow_instance = AsyncMock()
    service.record_step_outcome = AsyncMock(return_value=QueryResult(data={}))
    return service


@pytest.fixture
def mock_activity_service():
    """Mock activity service."""
    service = AsyncMock(spec=ActivityService)
    service.log_activity = AsyncMock(return_value=QueryResult(data={}))
    return service


@pytest.fixture
def mock_user_service():
    """Mock user service."""
    service = AsyncMock(spec=UserService)
    service.get_user_role = AsyncMock(return_value=None)
    service.get_users_by_role = AsyncMock(return_value=QueryResult(data=[]))
    return service


@pytest.fixture
def mock_notification_service():
    """Mock notification service."""
    service = AsyncMock(spec=NotificationService)
    service.create_workflow_approval_notification = AsyncMock(return_value=QueryResult(data={}))
    service.create_workflow_completion_notification = AsyncMock(return_value=QueryResult(data={}))
    service.create_workflow_rejection_notification = AsyncMock(return_value=QueryResult(data={}))
    return service


@pytest.fixture
def mock_publisher():
    return MagicMock(spec=RecordingPublisher)
