import re
from typing import Any

from devcamper.pipeline.context import CONTINUE, RequestContext, StageOutcome

STAGE_NAME = "xss_filter"

_SCRIPT_BLOCK = re.compile(r"<script\b[^>]*>.*?(</script\s*>|$)", re.IGNORECASE | re.DOTALL)


def clean_markup(text: str) -> str:
    """Drop script blocks, then neutralize any remaining tag openers."""
    return _SCRIPT_BLOCK.sub("", text).replace("<", "&lt;")


def clean(value: Any) -> Any:
    if isinstance(value, str):
        return clean_markup(value)
    if isinstance(value, dict):
        return {key: clean(item) for key, item in value.items()}
    if isinstance(value, list):
        return [clean(item) for item in value]
    return value


class XssFilter:
    name = STAGE_NAME

    async def process(self, ctx: RequestContext) -> StageOutcome:
        ctx.query = clean(ctx.query)
        ctx.body = clean(ctx.body)
        ctx.fields = clean(ctx.fields)
        return CONTINUE
