from collections.abc import Sequence

from starlette.middleware.cors import CORSMiddleware
from starlette.responses import Response

from devcamper.pipeline.context import CONTINUE, Halt, RequestContext, StageOutcome

STAGE_NAME = "cors"

DEFAULT_METHODS = ("GET", "HEAD", "PUT", "PATCH", "POST", "DELETE")

# Transport headers of the policy's own "OK" preflight body
_BODY_HEADERS = ("content-length", "content-type")


class Cors:
    """Allow cross-origin calls from any origin and answer pre-flight requests.

    Header values come from Starlette's ``CORSMiddleware`` policy. A granted
    pre-flight is answered with an empty 204; a refused one gets the
    policy's 400.
    """

    name = STAGE_NAME

    def __init__(
        self,
        allow_origins: Sequence[str] = ("*",),
        allow_methods: Sequence[str] = DEFAULT_METHODS,
    ) -> None:
        self.policy = CORSMiddleware(
            app=None,
            allow_origins=allow_origins,
            allow_methods=allow_methods,
            allow_headers=["*"],
        )

    async def process(self, ctx: RequestContext) -> StageOutcome:
        ctx.response_headers.update(self.policy.simple_headers)
        if ctx.method != "OPTIONS":
            return CONTINUE

        headers = ctx.request.headers
        if "origin" not in headers or "access-control-request-method" not in headers:
            return Halt(Response(status_code=204, headers=dict(self.policy.preflight_headers)))

        answer = self.policy.preflight_response(request_headers=headers)
        if answer.status_code >= 400:
            return Halt(answer)
        granted = {name: value for name, value in answer.headers.items() if name not in _BODY_HEADERS}
        return Halt(Response(status_code=204, headers=granted))
