from devcamper.pipeline.context import CONTINUE, RequestContext, StageOutcome

STAGE_NAME = "cookie_parser"


class CookieParser:
    name = STAGE_NAME

    async def process(self, ctx: RequestContext) -> StageOutcome:
        ctx.cookies = dict(ctx.request.cookies)
        return CONTINUE
