from collections.abc import Sequence
from dataclasses import dataclass

from fastapi import APIRouter, FastAPI

from devcamper.routes.auth import router as auth_router
from devcamper.routes.bootcamps import router as bootcamps_router
from devcamper.routes.courses import router as courses_router
from devcamper.routes.reviews import router as reviews_router
from devcamper.routes.users import router as users_router


@dataclass(frozen=True)
class RouteMount:
    prefix: str
    router: APIRouter


ROUTE_TABLE: tuple[RouteMount, ...] = (
    RouteMount("/api/v1/bootcamps", bootcamps_router),
    RouteMount("/api/v1/courses", courses_router),
    RouteMount("/api/v1/auth", auth_router),
    RouteMount("/api/v1/users", users_router),
    RouteMount("/api/v1/reviews", reviews_router),
)


def mount_routes(app: FastAPI, table: Sequence[RouteMount]) -> None:
    """Mount each route group under its prefix, longest prefix first."""
    prefixes = [mount.prefix for mount in table]
    duplicates = {p for p in prefixes if prefixes.count(p) > 1}
    if duplicates:
        raise ValueError(f"Duplicate route prefixes: {sorted(duplicates)}")

    for mount in sorted(table, key=lambda m: len(m.prefix), reverse=True):
        app.include_router(mount.router, prefix=mount.prefix)
