"""FastAPI application main file."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from assetflow.api.dependencies import get_data_client
from assetflow.api.routes import instances, notifications, workflows
from assetflow.config import Settings, configure_logging, load_settings
from assetflow.core.dispatcher import NotificationDispatcher
from assetflow.core.template_registry import register_all_templates
from assetflow.services import NotificationService, UserService, WorkflowService
from assetflow.storage.client import DataClient
from assetflow.storage.database import create_engine, create_tables

log = logging.getLogger(__name__)

APP_NAME = "Assetflow API"
APP_VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    settings: Settings = app.state.settings
    configure_logging(settings.log_level)

    engine = create_engine(settings.resolved_async_url())
    if settings.create_tables:
        await create_tables(engine)

    data_client = DataClient(engine)
    dispatcher = NotificationDispatcher(
        NotificationService(data_client),
        UserService(data_client),
        max_queue_size=settings.notification_queue_size,
    )

    # Auto-register templates from the workflows directory
    registration_results = await register_all_templates(WorkflowService(data_client), settings.workflows_dir)
    log.info(
        f"Workflow registration: {registration_results['registered']} registered, "
        f"{registration_results['updated']} updated, {registration_results['failed']} failed"
    )

    await dispatcher.start()
    app.state.engine = engine
    app.state.data_client = data_client
    app.state.dispatcher = dispatcher

    yield

    # Shutdown
    await dispatcher.stop()
    data_client.unsubscribe_all()
    await engine.dispose()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application; state is filled in by the lifespan."""
    settings = settings or load_settings()
    app = FastAPI(
        title=APP_NAME,
        description="Asset, document and approval workflow backend",
        version=APP_VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(workflows.router)
    app.include_router(instances.router)
    app.include_router(notifications.router)

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "name": APP_NAME,
            "version": APP_VERSION,
            "status": "running",
        }

    @app.get("/health")
    async def health(request: Request, db: DataClient = Depends(get_data_client)):
        """Health check endpoint."""
        database = await db.health_check()
        dispatcher = getattr(request.app.state, "dispatcher", None)
        return {
            "status": "healthy" if database["connected"] else "degraded",
            "database": database,
            "dispatcher_running": bool(dispatcher and dispatcher.running),
        }

    return app


app = create_app()
