from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from devcamper.config import Settings
from devcamper.database import get_session
from devcamper.dependencies import get_request_context, get_settings
from devcamper.models.bootcamp import Bootcamp
from devcamper.pipeline.context import RequestContext
from devcamper.schemas.bootcamp import BootcampResponse, CreateBootcampRequest
from devcamper.schemas.envelope import DataEnvelope, ListEnvelope
from devcamper.services.bootcamp_registry import create_bootcamp, store_bootcamp_photo
from devcamper.services.resources import get_resource, list_resources

router = APIRouter(tags=["bootcamps"])


@router.get("")
async def list_bootcamps(
    session: AsyncSession = Depends(get_session),
) -> ListEnvelope[BootcampResponse]:
    bootcamps = await list_resources(session, Bootcamp)
    return ListEnvelope(
        count=len(bootcamps),
        data=[BootcampResponse.model_validate(b) for b in bootcamps],
    )


@router.get("/{bootcamp_id}")
async def get_bootcamp(
    bootcamp_id: int,
    session: AsyncSession = Depends(get_session),
) -> DataEnvelope[BootcampResponse]:
    bootcamp = await get_resource(session, Bootcamp, bootcamp_id)
    return DataEnvelope(data=BootcampResponse.model_validate(bootcamp))


@router.post("", status_code=201)
async def register_bootcamp(
    body: CreateBootcampRequest,
    session: AsyncSession = Depends(get_session),
) -> DataEnvelope[BootcampResponse]:
    bootcamp = await create_bootcamp(session, body)
    return DataEnvelope(data=BootcampResponse.model_validate(bootcamp))


@router.put("/{bootcamp_id}/photo")
async def upload_bootcamp_photo(
    bootcamp_id: int,
    ctx: RequestContext = Depends(get_request_context),
    settings: Settings = Depends(get_settings),
    session: AsyncSession = Depends(get_session),
) -> DataEnvelope[str]:
    """Store the image sent in the ``file`` field of a multipart upload."""
    filename = await store_bootcamp_photo(
        session,
        bootcamp_id,
        ctx.files.get("file"),
        upload_dir=settings.file_upload_path,
        max_bytes=settings.max_file_upload,
    )
    return DataEnvelope(data=filename)
