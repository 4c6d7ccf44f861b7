import asyncio
from collections.abc import Callable
from typing import Any

import structlog

log = structlog.get_logger()

FaultCallback = Callable[[BaseException | None, str], None]


def _log_fault(exc: BaseException | None, message: str) -> None:
    log.error("unhandled_rejection", error=str(exc) if exc is not None else message)


class FaultSink:
    """Process-wide receiver for failures that escape every request.

    Faults are handed to ``callback`` and otherwise ignored: the process keeps
    running and nothing is retried.
    """

    def __init__(self, callback: FaultCallback | None = None) -> None:
        self.callback = callback or _log_fault
        self.count = 0

    def report(self, exc: BaseException | None, message: str = "") -> None:
        self.count += 1
        try:
            self.callback(exc, message or (str(exc) if exc is not None else "unknown fault"))
        except Exception as e:
            log.error("fault_callback_failed", error=str(e))

    def handle(self, loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
        self.report(context.get("exception"), context.get("message", ""))

    def install(self, loop: asyncio.AbstractEventLoop) -> None:
        loop.set_exception_handler(self.handle)
