from fastapi import Request

from devcamper.config import Settings
from devcamper.pipeline.context import RequestContext


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_request_context(request: Request) -> RequestContext:
    """The context the pipeline built for this request."""
    return request.state.ctx
