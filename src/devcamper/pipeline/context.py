import time
from collections.abc import Awaitable, Callable, Collection
from dataclasses import dataclass, field
from typing import Any, Protocol

from starlette.datastructures import FormData, UploadFile
from starlette.requests import Request
from starlette.responses import Response

QueryValue = str | list[str]
ResponseHook = Callable[["RequestContext", int], Awaitable[None] | None]


@dataclass(frozen=True)
class Continue:
    pass


@dataclass(frozen=True)
class Halt:
    response: Response


@dataclass(frozen=True)
class Fail:
    error: Exception


StageOutcome = Continue | Halt | Fail

CONTINUE = Continue()


@dataclass
class StageRecord:
    stage: str
    outcome: str
    duration_ms: float = 0.0


@dataclass
class RequestContext:
    request: Request
    raw_body: bytes = b""
    body: Any = None
    cookies: dict[str, str] = field(default_factory=dict)
    query: dict[str, QueryValue] = field(default_factory=dict)
    query_polluted: dict[str, list[str]] = field(default_factory=dict)
    files: dict[str, UploadFile | list[UploadFile]] = field(default_factory=dict)
    fields: dict[str, QueryValue] = field(default_factory=dict)
    fields_polluted: dict[str, list[str]] = field(default_factory=dict)
    form: FormData | None = None
    response_headers: dict[str, str] = field(default_factory=dict)
    response_hooks: list[ResponseHook] = field(default_factory=list)
    state: dict[str, Any] = field(default_factory=dict)
    pipeline_log: list[StageRecord] = field(default_factory=list)
    started_at: float = field(default_factory=time.monotonic)

    @property
    def method(self) -> str:
        return self.request.method

    @property
    def path(self) -> str:
        return self.request.url.path

    @property
    def content_type(self) -> str:
        return self.request.headers.get("content-type", "").split(";", 1)[0].strip().lower()

    @property
    def client_id(self) -> str:
        return self.request.client.host if self.request.client else "unknown"

    def client_address(self, trusted_proxies: Collection[str] = ()) -> str:
        """Address of the caller.

        ``X-Forwarded-For`` is only read when the socket peer is one of
        ``trusted_proxies``. Hops are walked from the nearest one back and the
        first address that is not a trusted proxy wins.
        """
        peer = self.client_id
        if peer not in trusted_proxies:
            return peer
        hops = [hop.strip() for hop in self.request.headers.get("x-forwarded-for", "").split(",")]
        hops = [hop for hop in hops if hop]
        for hop in reversed(hops):
            if hop not in trusted_proxies:
                return hop
        return hops[0] if hops else peer

    @property
    def body_is_json(self) -> bool:
        ct = self.content_type
        return ct == "application/json" or ct.endswith("+json")


class Stage(Protocol):
    name: str

    async def process(self, ctx: RequestContext) -> StageOutcome: ...


def query_from_items(items: list[tuple[str, str]]) -> dict[str, QueryValue]:
    """Group repeated keys into lists, keeping first-seen key order."""
    query: dict[str, QueryValue] = {}
    for key, value in items:
        existing = query.get(key)
        if existing is None:
            query[key] = value
        elif isinstance(existing, list):
            existing.append(value)
        else:
            query[key] = [existing, value]
    return query
