from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
from fastapi import APIRouter, Depends, FastAPI, Request
from httpx import ASGITransport, AsyncClient
from structlog.testing import capture_logs

from conftest import make_settings
from devcamper.config import Settings
from devcamper.database import Database
from devcamper.dependencies import get_request_context
from devcamper.main import create_app
from devcamper.pipeline.context import RequestContext
from devcamper.routing import ROUTE_TABLE, RouteMount

echo_router = APIRouter(tags=["echo"])


@echo_router.post("")
async def echo_body(request: Request, ctx: RequestContext = Depends(get_request_context)) -> dict:
    return {"received": await request.json(), "ctx_body": ctx.body}


@echo_router.get("")
async def echo_query(request: Request) -> dict:
    return {"query": dict(request.query_params)}


@echo_router.get("/cookies")
async def echo_cookies(ctx: RequestContext = Depends(get_request_context)) -> dict:
    return {"cookies": ctx.cookies}


@echo_router.post("/form")
async def echo_form(ctx: RequestContext = Depends(get_request_context)) -> dict:
    return {"fields": ctx.fields, "files": sorted(ctx.files)}


@echo_router.get("/boom")
async def boom() -> dict:
    raise RuntimeError("could not reach postgres://admin:secret@db")


ECHO_TABLE = (*ROUTE_TABLE, RouteMount("/api/v1/echo", echo_router))


async def _client_for(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def echo_client(settings: Settings, database: Database, clock) -> AsyncGenerator[AsyncClient]:
    app = create_app(settings, database=database, route_table=ECHO_TABLE, clock=clock)
    async for ac in _client_for(app):
        yield ac


@pytest.fixture
async def dev_client(tmp_path: Path, database: Database) -> AsyncGenerator[AsyncClient]:
    settings = make_settings(tmp_path, node_env="development")
    app = create_app(settings, database=database, route_table=ECHO_TABLE)
    async for ac in _client_for(app):
        yield ac


# --- Routing ---


async def test_get_bootcamps(client: AsyncClient):
    response = await client.get("/api/v1/bootcamps")
    assert response.status_code == 200
    assert response.json() == {"success": True, "count": 0, "data": []}


async def test_collaborator_payload_passes_unmodified(settings: Settings, database: Database):
    stub = APIRouter()
    payload = {"anything": [1, 2, 3], "nested": {"value": None}, "text": "a < b"}

    @stub.get("")
    async def list_stub() -> dict:
        return payload

    app = create_app(
        settings, database=database, route_table=(RouteMount("/api/v1/bootcamps", stub),)
    )
    async for ac in _client_for(app):
        response = await ac.get("/api/v1/bootcamps")
    assert response.status_code == 200
    assert response.json() == payload


async def test_unmounted_path_not_found(client: AsyncClient):
    response = await client.get("/api/v2/x")
    assert response.status_code == 404
    assert response.json()["success"] is False


async def test_wrong_method_is_enveloped(client: AsyncClient):
    response = await client.delete("/api/v1/courses")
    assert response.status_code == 405
    assert response.json()["success"] is False


# --- Body parsing and errors ---


async def test_malformed_json_returns_400(client: AsyncClient):
    response = await client.post(
        "/api/v1/bootcamps",
        content=b'{"name": "Devworks",',
        headers={"content-type": "application/json"},
    )
    assert response.status_code == 400
    data = response.json()
    assert data["success"] is False
    assert data["error"].startswith("Malformed JSON body")


async def test_oversized_body_returns_413(tmp_path: Path, database: Database):
    settings = make_settings(tmp_path, body_limit_bytes=64)
    app = create_app(settings, database=database)
    async for ac in _client_for(app):
        response = await ac.post("/api/v1/bootcamps", json={"description": "x" * 200})
    assert response.status_code == 413
    assert response.json() == {"success": False, "error": "request entity too large"}


async def test_oversized_plain_body_returns_413(tmp_path: Path, database: Database):
    settings = make_settings(tmp_path, body_limit_bytes=1024)
    app = create_app(settings, database=database)
    async for ac in _client_for(app):
        response = await ac.post(
            "/api/v1/bootcamps", content=b"x" * 4096, headers={"content-type": "text/plain"}
        )
    assert response.status_code == 413
    assert response.json() == {"success": False, "error": "request entity too large"}


async def test_unhandled_error_hides_detail_in_production(echo_client: AsyncClient):
    response = await echo_client.get("/api/v1/echo/boom")
    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Server Error"}
    assert response.headers["x-content-type-options"] == "nosniff"


async def test_unhandled_error_shows_detail_in_development(dev_client: AsyncClient):
    response = await dev_client.get("/api/v1/echo/boom")
    assert response.status_code == 500
    assert "postgres://" in response.json()["error"]


# --- Sanitizing stages ---


async def test_sanitized_body_reaches_handler(echo_client: AsyncClient):
    response = await echo_client.post(
        "/api/v1/echo",
        json={
            "name": "Devworks",
            "$where": "sleep(1000)",
            "email": {"$gt": ""},
            "bio": "<script>steal()</script>Hello",
        },
    )
    assert response.status_code == 200
    data = response.json()
    expected = {"name": "Devworks", "email": {}, "bio": "Hello"}
    assert data["received"] == expected
    assert data["ctx_body"] == expected


async def test_query_pollution_and_operators(echo_client: AsyncClient):
    response = await echo_client.get("/api/v1/echo?sort=name&sort=-cost&price%5B%24gt%5D=1&page=2")
    assert response.status_code == 200
    assert response.json()["query"] == {"sort": "-cost", "page": "2"}

    response = await echo_client.get("/api/v1/echo?sort=-cost&sort=name")
    assert response.json()["query"] == {"sort": "name"}


async def test_cookies_reach_handler(echo_client: AsyncClient):
    response = await echo_client.get("/api/v1/echo/cookies", headers={"cookie": "token=abc"})
    assert response.json() == {"cookies": {"token": "abc"}}


async def test_form_fields_are_sanitized(echo_client: AsyncClient):
    response = await echo_client.post(
        "/api/v1/echo/form",
        data={"$where": "sleep(1)", "bio": "<script>x()</script>hi", "role": ["user", "admin"]},
        files={"attachment": ("notes.txt", b"hello", "text/plain")},
    )
    assert response.status_code == 200
    assert response.json() == {"fields": {"bio": "hi", "role": "admin"}, "files": ["attachment"]}


# --- Response headers ---


async def test_security_and_cors_headers(client: AsyncClient):
    response = await client.get("/api/v1/bootcamps")
    assert response.headers["x-content-type-options"] == "nosniff"
    assert response.headers["x-frame-options"] == "SAMEORIGIN"
    assert response.headers["access-control-allow-origin"] == "*"
    assert response.headers["x-ratelimit-limit"] == "100"
    assert response.headers["x-ratelimit-remaining"] == "99"


async def test_preflight_short_circuits(client: AsyncClient):
    response = await client.options(
        "/api/v1/bootcamps",
        headers={
            "origin": "http://example.com",
            "access-control-request-method": "POST",
            "access-control-request-headers": "content-type",
        },
    )
    assert response.status_code == 204
    assert response.content == b""
    assert response.headers["access-control-allow-methods"] == "GET, HEAD, PUT, PATCH, POST, DELETE"
    assert response.headers["access-control-allow-headers"] == "content-type"


# --- Rate limiting ---


async def test_rate_limit_101st_request(client: AsyncClient, clock):
    for _ in range(100):
        response = await client.get("/api/v1/auth/logout")
        assert response.status_code == 200

    response = await client.get("/api/v1/auth/logout")
    assert response.status_code == 429
    assert response.json() == {
        "success": False,
        "error": "Too many requests, please try again later.",
    }
    assert response.headers["retry-after"] == "600"
    # Headers set by earlier stages still apply
    assert response.headers["x-content-type-options"] == "nosniff"

    clock.advance(600)
    response = await client.get("/api/v1/auth/logout")
    assert response.status_code == 200


async def test_rate_limit_ignores_rotating_forwarded_for(client: AsyncClient):
    for i in range(100):
        response = await client.get("/api/v1/auth/logout", headers={"x-forwarded-for": f"1.2.3.{i}"})
        assert response.status_code == 200

    response = await client.get("/api/v1/auth/logout", headers={"x-forwarded-for": "9.9.9.9"})
    assert response.status_code == 429


# --- Static assets ---


async def test_static_file_served(client: AsyncClient, settings: Settings):
    (settings.public_dir / "readme.txt").write_text("DevCamper public files")
    response = await client.get("/readme.txt")
    assert response.status_code == 200
    assert response.text == "DevCamper public files"
    assert response.headers["access-control-allow-origin"] == "*"


async def test_static_file_not_modified(client: AsyncClient, settings: Settings):
    (settings.public_dir / "readme.txt").write_text("DevCamper public files")
    first = await client.get("/readme.txt")
    response = await client.get("/readme.txt", headers={"if-none-match": first.headers["etag"]})
    assert response.status_code == 304


# --- Request logging ---


async def test_request_logged_in_development(dev_client: AsyncClient):
    with capture_logs() as logs:
        response = await dev_client.get("/api/v1/echo?x=1")
    assert response.status_code == 200
    records = [r for r in logs if r["event"] == "request"]
    assert len(records) == 1
    assert records[0]["method"] == "GET"
    assert records[0]["path"] == "/api/v1/echo"
    assert records[0]["status"] == 200
    assert records[0]["latency_ms"] >= 0


async def test_request_not_logged_in_production(client: AsyncClient):
    with capture_logs() as logs:
        await client.get("/api/v1/bootcamps")
    assert not [r for r in logs if r["event"] == "request"]
