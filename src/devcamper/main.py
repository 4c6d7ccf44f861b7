from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from devcamper._internal.clock import Clock
from devcamper.config import Settings
from devcamper.database import Database
from devcamper.faults import FaultSink
from devcamper.middleware.errors import ErrorStage, register_exception_handlers
from devcamper.middleware.pipeline import PipelineMiddleware
from devcamper.pipeline.executor import build_pipeline
from devcamper.routing import ROUTE_TABLE, RouteMount, mount_routes

log = structlog.get_logger()


def configure_logging(settings: Settings) -> None:
    renderer = (
        structlog.dev.ConsoleRenderer()
        if settings.is_development
        else structlog.processors.JSONRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.PrintLoggerFactory(),
    )


def create_app(
    settings: Settings,
    *,
    database: Database,
    fault_sink: FaultSink | None = None,
    route_table: Sequence[RouteMount] = ROUTE_TABLE,
    clock: Clock | None = None,
) -> FastAPI:
    """Compose the API: request pipeline, route groups and the error stage."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        log.info("starting", env=settings.node_env)
        yield
        await database.dispose()
        log.info("shutdown")

    app = FastAPI(title="DevCamper API", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.database = database

    error_stage = ErrorStage(settings)
    pipeline = build_pipeline(settings, clock=clock)
    app.state.pipeline = pipeline

    app.add_middleware(
        PipelineMiddleware,
        pipeline=pipeline,
        error_stage=error_stage,
        fault_sink=fault_sink or FaultSink(),
    )
    mount_routes(app, route_table)
    register_exception_handlers(app, error_stage)

    return app
