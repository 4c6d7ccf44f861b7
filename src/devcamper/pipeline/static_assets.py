from pathlib import Path

from starlette.exceptions import HTTPException
from starlette.staticfiles import StaticFiles

from devcamper.pipeline.context import CONTINUE, Halt, RequestContext, StageOutcome

STAGE_NAME = "static_assets"


class StaticAssets:
    """Serve files from a public directory, forwarding everything else.

    Lookup, traversal checks, ``index.html`` for directories and conditional
    requests are handled by Starlette's ``StaticFiles``. Anything it cannot
    find is left to the router.
    """

    name = STAGE_NAME

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)
        self.files = StaticFiles(directory=self.directory, html=True, check_dir=False)

    async def process(self, ctx: RequestContext) -> StageOutcome:
        if ctx.method not in ("GET", "HEAD"):
            return CONTINUE
        scope = ctx.request.scope
        try:
            response = await self.files.get_response(self.files.get_path(scope), scope)
        except HTTPException as e:
            if e.status_code == 404:
                return CONTINUE
            raise
        if response.status_code == 404:
            return CONTINUE
        return Halt(response)
