import time

import structlog

from devcamper.pipeline.context import CONTINUE, RequestContext, StageOutcome

STAGE_NAME = "request_logger"

log = structlog.get_logger()


class RequestLogger:
    """Emit one ``request`` record per request once its status is known."""

    name = STAGE_NAME

    async def process(self, ctx: RequestContext) -> StageOutcome:
        ctx.response_hooks.append(_log_request)
        return CONTINUE


def _log_request(ctx: RequestContext, status: int) -> None:
    log.info(
        "request",
        method=ctx.method,
        path=ctx.path,
        status=status,
        latency_ms=round((time.monotonic() - ctx.started_at) * 1000, 3),
    )
