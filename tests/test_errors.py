from pathlib import Path

import pytest
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import IntegrityError, NoResultFound
from starlette.exceptions import HTTPException

from conftest import make_settings
from devcamper.errors import (
    AuthenticationError,
    ErrorResponse,
    RateLimitExceededError,
    ResourceNotFoundError,
)
from devcamper.middleware.errors import ErrorStage


@pytest.fixture
def error_stage(tmp_path: Path) -> ErrorStage:
    return ErrorStage(make_settings(tmp_path, node_env="production"))


@pytest.mark.parametrize(
    "exc,status,message",
    [
        (ErrorResponse("Please upload a file", 400), 400, "Please upload a file"),
        (AuthenticationError(), 401, "Not authorized to access this route"),
        (ResourceNotFoundError("Bootcamp", 7), 404, "Bootcamp not found with id of 7"),
        (HTTPException(status_code=404), 404, "Not Found"),
        (IntegrityError("INSERT", {}, Exception("UNIQUE")), 400, "Duplicate field value entered"),
        (NoResultFound(), 404, "Resource not found"),
        (ValueError("internal detail"), 500, "Server Error"),
    ],
)
def test_classify(error_stage: ErrorStage, exc, status, message):
    assert error_stage.classify(exc)[:2] == (status, message)


def test_validation_errors_joined(error_stage: ErrorStage):
    exc = RequestValidationError(
        [
            {"loc": ("body", "name"), "msg": "Field required", "type": "missing"},
            {"loc": ("body", "description"), "msg": "Field required", "type": "missing"},
        ]
    )
    status, message, _ = error_stage.classify(exc)
    assert status == 400
    assert message == "name: Field required, description: Field required"


def test_path_parameter_errors_are_not_found(error_stage: ErrorStage):
    exc = RequestValidationError(
        [{"loc": ("path", "bootcamp_id"), "msg": "Input should be a valid integer", "type": "int_parsing"}]
    )
    assert error_stage.classify(exc) == (404, "Resource not found", {})

    mixed = RequestValidationError(
        [
            {"loc": ("path", "bootcamp_id"), "msg": "Input should be a valid integer", "type": "int_parsing"},
            {"loc": ("body", "name"), "msg": "Field required", "type": "missing"},
        ]
    )
    assert error_stage.classify(mixed)[0] == 400


def test_render_uniform_envelope(error_stage: ErrorStage):
    response = error_stage.render(RateLimitExceededError(retry_after=30))
    assert response.status_code == 429
    assert response.body == b'{"success":false,"error":"Too many requests, please try again later."}'
    assert response.headers["retry-after"] == "30"


def test_development_exposes_message(tmp_path: Path):
    stage = ErrorStage(make_settings(tmp_path, node_env="development"))
    assert stage.classify(ValueError("internal detail")) == (500, "internal detail", {})
