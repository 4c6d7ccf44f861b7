from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException
from starlette.formparsers import MultiPartException

from devcamper.errors import MalformedInputError
from devcamper.pipeline.context import CONTINUE, Fail, RequestContext, StageOutcome

STAGE_NAME = "file_upload"


class FileUploadHandler:
    """Parse ``multipart/form-data`` bodies into upload handles on the context.

    The parsed form is closed by the pipeline middleware once the response
    has been sent.
    """

    name = STAGE_NAME

    def __init__(self, max_files: int = 1000, max_fields: int = 1000) -> None:
        self.max_files = max_files
        self.max_fields = max_fields

    async def process(self, ctx: RequestContext) -> StageOutcome:
        if ctx.content_type != "multipart/form-data":
            return CONTINUE

        try:
            form = await ctx.request.form(max_files=self.max_files, max_fields=self.max_fields)
        except MultiPartException as e:
            return Fail(MalformedInputError(e.message))
        except HTTPException as e:
            return Fail(MalformedInputError(str(e.detail)))
        ctx.form = form

        for key, value in form.multi_items():
            target = ctx.files if isinstance(value, UploadFile) else ctx.fields
            existing = target.get(key)
            if existing is None:
                target[key] = value
            elif isinstance(existing, list):
                existing.append(value)
            else:
                target[key] = [existing, value]
        return CONTINUE
