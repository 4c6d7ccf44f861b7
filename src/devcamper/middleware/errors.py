import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, NoResultFound
from starlette.exceptions import HTTPException as StarletteHTTPException

from devcamper.config import Settings
from devcamper.errors import DevcamperError
from devcamper.schemas.envelope import ErrorEnvelope

log = structlog.get_logger()

GENERIC_MESSAGE = "Server Error"


def _validation_message(exc: RequestValidationError) -> str:
    messages = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path"))
        messages.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return ", ".join(messages) or "Validation failed"


def _only_path_errors(exc: RequestValidationError) -> bool:
    """True when every error concerns a URL path parameter."""
    errors = exc.errors()
    return bool(errors) and all(tuple(err.get("loc", ()))[:1] == ("path",) for err in errors)


class ErrorStage:
    """Terminal stage turning any error into ``{"success": false, "error": ...}``.

    Never raises. Unclassified errors become a 500 whose text is only
    exposed in development mode.
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def classify(self, exc: Exception) -> tuple[int, str, dict[str, str]]:
        if isinstance(exc, DevcamperError):
            return exc.status_code, exc.message, dict(exc.headers)
        if isinstance(exc, StarletteHTTPException):
            return exc.status_code, str(exc.detail), dict(exc.headers or {})
        if isinstance(exc, RequestValidationError):
            if _only_path_errors(exc):
                return 404, "Resource not found", {}
            return 400, _validation_message(exc), {}
        if isinstance(exc, IntegrityError):
            return 400, "Duplicate field value entered", {}
        if isinstance(exc, NoResultFound):
            return 404, "Resource not found", {}
        message = str(exc) if self.settings.is_development and str(exc) else GENERIC_MESSAGE
        return 500, message, {}

    def render(self, exc: Exception, request: Request | None = None) -> JSONResponse:
        status, message, headers = self.classify(exc)
        path = request.url.path if request is not None else None
        if status >= 500:
            log.error("request_error", status=status, path=path, error=repr(exc), exc_info=exc)
        else:
            log.info("request_error", status=status, path=path, error=message)
        return JSONResponse(
            status_code=status,
            content=ErrorEnvelope(error=message).model_dump(),
            headers=headers or None,
        )


def register_exception_handlers(app: FastAPI, error_stage: ErrorStage) -> None:
    async def handle(request: Request, exc: Exception) -> JSONResponse:
        return error_stage.render(exc, request)

    for exc_class in (
        DevcamperError,
        StarletteHTTPException,
        RequestValidationError,
        IntegrityError,
        NoResultFound,
    ):
        app.add_exception_handler(exc_class, handle)
