import re
from typing import Any

import structlog

from devcamper.pipeline.context import CONTINUE, RequestContext, StageOutcome

STAGE_NAME = "operator_sanitizer"

log = structlog.get_logger()

# Splits "price[$gt]" into "price", "$gt"
_SEGMENT_SPLIT = re.compile(r"[\[\]]+")


def is_operator_key(key: str) -> bool:
    """True for keys a store query builder would read as an operator or a path."""
    if "." in key:
        return True
    return any(segment.startswith("$") for segment in _SEGMENT_SPLIT.split(key) if segment)


def _rewrite_key(key: str, replace_with: str) -> str:
    key = key.replace(".", replace_with)
    return "".join(
        replace_with + part[1:] if part.startswith("$") else part
        for part in re.split(r"(\[|\])", key)
    )


def sanitize(value: Any, replace_with: str | None = None) -> tuple[Any, bool]:
    """Strip (or rewrite) operator-like keys from nested dicts and lists.

    Returns the sanitized value and whether anything was changed.
    """
    if isinstance(value, dict):
        changed = False
        cleaned: dict[str, Any] = {}
        for key, item in value.items():
            item, item_changed = sanitize(item, replace_with)
            changed = changed or item_changed
            if isinstance(key, str) and is_operator_key(key):
                changed = True
                if replace_with is None:
                    continue
                key = _rewrite_key(key, replace_with)
            cleaned[key] = item
        return cleaned, changed
    if isinstance(value, list):
        changed = False
        items = []
        for item in value:
            item, item_changed = sanitize(item, replace_with)
            changed = changed or item_changed
            items.append(item)
        return items, changed
    return value, False


class OperatorSanitizer:
    name = STAGE_NAME

    def __init__(self, replace_with: str | None = None) -> None:
        if replace_with is not None and (replace_with in "$." or len(replace_with) != 1):
            raise ValueError("replace_with must be a single character other than '$' or '.'")
        self.replace_with = replace_with

    async def process(self, ctx: RequestContext) -> StageOutcome:
        ctx.query, query_changed = sanitize(ctx.query, self.replace_with)
        ctx.body, body_changed = sanitize(ctx.body, self.replace_with)
        ctx.fields, fields_changed = sanitize(ctx.fields, self.replace_with)
        if query_changed or body_changed or fields_changed:
            log.warning("operator_keys_sanitized", path=ctx.path, client=ctx.client_id)
        return CONTINUE
