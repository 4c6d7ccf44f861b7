import inspect
import json
from urllib.parse import urlencode

import structlog
from fastapi import Request
from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from devcamper.faults import FaultSink
from devcamper.middleware.errors import ErrorStage
from devcamper.pipeline.context import Fail, Halt, RequestContext, query_from_items
from devcamper.pipeline.executor import Pipeline

log = structlog.get_logger()


class PipelineMiddleware:
    """Run every HTTP request through the stage pipeline before routing.

    Halts and failures are answered here. Requests that pass every stage
    reach the router with the sanitized query string and JSON body, and
    with their context on ``request.state.ctx``. Multipart form data is
    only available through the context.
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        pipeline: Pipeline,
        error_stage: ErrorStage,
        fault_sink: FaultSink,
    ) -> None:
        self.app = app
        self.pipeline = pipeline
        self.error_stage = error_stage
        self.fault_sink = fault_sink

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope, receive)
        ctx = RequestContext(request=request, query=query_from_items(request.query_params.multi_items()))
        response_started = False

        async def send_with_draft(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
                headers = MutableHeaders(scope=message)
                for name, value in ctx.response_headers.items():
                    if name not in headers:
                        headers[name] = value
                await _run_hooks(ctx, message["status"])
            await send(message)

        try:
            outcome = await self.pipeline.run(ctx)
            if isinstance(outcome, Halt):
                await outcome.response(scope, receive, send_with_draft)
                return
            if isinstance(outcome, Fail):
                response = self.error_stage.render(outcome.error, request)
                await response(scope, receive, send_with_draft)
                return

            downstream_scope, downstream_receive = _rewrite_request(scope, receive, ctx)
            try:
                await self.app(downstream_scope, downstream_receive, send_with_draft)
            except Exception as e:
                if response_started:
                    self.fault_sink.report(e)
                    return
                response = self.error_stage.render(e, request)
                await response(scope, receive, send_with_draft)
        finally:
            if ctx.form is not None:
                await ctx.form.close()


async def _run_hooks(ctx: RequestContext, status: int) -> None:
    for hook in ctx.response_hooks:
        try:
            result = hook(ctx, status)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            log.error("response_hook_failed", hook=getattr(hook, "__name__", repr(hook)), error=str(e))


def _encode_query(ctx: RequestContext) -> bytes:
    pairs: list[tuple[str, str]] = []
    for key, value in ctx.query.items():
        if isinstance(value, list):
            pairs.extend((key, item) for item in value)
        else:
            pairs.append((key, value))
    return urlencode(pairs).encode("latin-1")


def _rewrite_request(scope: Scope, receive: Receive, ctx: RequestContext) -> tuple[Scope, Receive]:
    scope = dict(scope)
    scope["headers"] = list(scope.get("headers", []))
    scope["query_string"] = _encode_query(ctx)
    scope["state"] = {**scope.get("state", {}), "ctx": ctx}

    # Multipart bodies were consumed by the form parser; handlers read ctx.fields and ctx.files.
    body = ctx.raw_body
    if ctx.body_is_json and ctx.raw_body.strip():
        body = json.dumps(ctx.body).encode("utf-8")
    headers = MutableHeaders(scope=scope)
    if body or "content-length" in headers:
        headers["content-length"] = str(len(body))

    replayed = False

    async def replay() -> Message:
        nonlocal replayed
        if not replayed:
            replayed = True
            return {"type": "http.request", "body": body, "more_body": False}
        return await receive()

    return scope, replay
