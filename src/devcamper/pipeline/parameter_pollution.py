from collections.abc import Iterable

from devcamper.pipeline.context import CONTINUE, QueryValue, RequestContext, StageOutcome

STAGE_NAME = "parameter_pollution"


class ParameterPollutionGuard:
    """Collapse repeated query keys and form fields to their last value.

    The full lists of values are kept in ``ctx.query_polluted`` and
    ``ctx.fields_polluted``. Whitelisted keys keep every value.
    """

    name = STAGE_NAME

    def __init__(self, whitelist: Iterable[str] = ()) -> None:
        self.whitelist = frozenset(whitelist)

    def collapse(self, values: dict[str, QueryValue], polluted: dict[str, list[str]]) -> None:
        for key, value in list(values.items()):
            if not isinstance(value, list) or key in self.whitelist:
                continue
            polluted[key] = value
            values[key] = value[-1]

    async def process(self, ctx: RequestContext) -> StageOutcome:
        self.collapse(ctx.query, ctx.query_polluted)
        self.collapse(ctx.fields, ctx.fields_polluted)
        return CONTINUE
