import json

from devcamper.errors import MalformedInputError, PayloadTooLargeError
from devcamper.pipeline.context import CONTINUE, Fail, RequestContext, StageOutcome

STAGE_NAME = "body_parser"


class JsonBodyParser:
    """Read the request body once, up to ``limit_bytes``, and parse JSON payloads into ``ctx.body``.

    Multipart bodies are left on the wire for the file-upload stage, which
    streams them into spooled upload handles.
    """

    name = STAGE_NAME

    def __init__(self, limit_bytes: int) -> None:
        self.limit_bytes = limit_bytes

    async def read_limited(self, ctx: RequestContext) -> bytes | None:
        """Return the body, or None once it grows past the limit."""
        declared = ctx.request.headers.get("content-length")
        if declared and declared.isdigit() and int(declared) > self.limit_bytes:
            return None

        body = bytearray()
        async for chunk in ctx.request.stream():
            body += chunk
            if len(body) > self.limit_bytes:
                return None
        return bytes(body)

    async def process(self, ctx: RequestContext) -> StageOutcome:
        if ctx.content_type == "multipart/form-data":
            return CONTINUE

        raw_body = await self.read_limited(ctx)
        if raw_body is None:
            return Fail(PayloadTooLargeError("request entity too large"))
        ctx.raw_body = raw_body

        if not ctx.body_is_json:
            return CONTINUE
        if not ctx.raw_body.strip():
            ctx.body = {}
            return CONTINUE
        try:
            ctx.body = json.loads(ctx.raw_body)
        except UnicodeDecodeError:
            return Fail(MalformedInputError("Request body is not valid UTF-8"))
        except json.JSONDecodeError as e:
            return Fail(MalformedInputError(f"Malformed JSON body: {e.msg} at position {e.pos}"))
        return CONTINUE
