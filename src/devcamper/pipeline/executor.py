import time
from collections.abc import Sequence

import structlog

from devcamper._internal.clock import Clock
from devcamper.config import Settings
from devcamper.pipeline.body_parser import JsonBodyParser
from devcamper.pipeline.context import (
    CONTINUE,
    Continue,
    Fail,
    Halt,
    RequestContext,
    Stage,
    StageOutcome,
    StageRecord,
)
from devcamper.pipeline.cookie_parser import CookieParser
from devcamper.pipeline.cors import Cors
from devcamper.pipeline.file_upload import FileUploadHandler
from devcamper.pipeline.operator_sanitizer import OperatorSanitizer
from devcamper.pipeline.parameter_pollution import ParameterPollutionGuard
from devcamper.pipeline.rate_limiter import RateLimiter
from devcamper.pipeline.request_logger import RequestLogger
from devcamper.pipeline.security_headers import SecurityHeaders
from devcamper.pipeline.static_assets import StaticAssets
from devcamper.pipeline.xss_filter import XssFilter

log = structlog.get_logger()


class Pipeline:
    """An immutable, ordered sequence of stages run by a single dispatcher loop."""

    def __init__(self, stages: Sequence[Stage]) -> None:
        names = [stage.name for stage in stages]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate pipeline stage in {names}")
        self.stages: tuple[Stage, ...] = tuple(stages)

    @property
    def stage_names(self) -> list[str]:
        return [stage.name for stage in self.stages]

    def get(self, name: str) -> Stage:
        for stage in self.stages:
            if stage.name == name:
                return stage
        raise KeyError(name)

    async def run(self, ctx: RequestContext) -> StageOutcome:
        """Run every stage in order. Stop at the first halt or failure."""
        for stage in self.stages:
            start = time.monotonic()
            try:
                outcome = await stage.process(ctx)
            except Exception as e:
                outcome = Fail(e)

            ctx.pipeline_log.append(
                StageRecord(
                    stage=stage.name,
                    outcome=type(outcome).__name__.lower(),
                    duration_ms=(time.monotonic() - start) * 1000,
                )
            )

            if isinstance(outcome, Continue):
                continue
            if isinstance(outcome, Halt):
                log.debug("pipeline_halted", stage=stage.name, path=ctx.path)
            else:
                log.info(
                    "pipeline_failed",
                    stage=stage.name,
                    path=ctx.path,
                    error=type(outcome.error).__name__,
                )
            return outcome

        return CONTINUE


def build_pipeline(settings: Settings, *, clock: Clock | None = None) -> Pipeline:
    """Assemble the request stages. Order is significant."""
    stages: list[Stage] = [
        JsonBodyParser(limit_bytes=settings.body_limit_bytes),
        CookieParser(),
    ]
    if settings.is_development:
        stages.append(RequestLogger())
    stages += [
        FileUploadHandler(),
        OperatorSanitizer(),
        SecurityHeaders(),
        XssFilter(),
        RateLimiter(
            max_requests=settings.rate_limit_max_requests,
            window_seconds=settings.rate_limit_window_seconds,
            clock=clock,
            trusted_proxies=settings.trusted_proxies,
        ),
        ParameterPollutionGuard(whitelist=settings.hpp_whitelist),
        Cors(),
        StaticAssets(settings.public_dir),
    ]
    return Pipeline(stages)
