import asyncio
from pathlib import Path

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile

from devcamper.errors import ErrorResponse
from devcamper.models.bootcamp import Bootcamp
from devcamper.schemas.bootcamp import CreateBootcampRequest
from devcamper.services.resources import get_resource

log = structlog.get_logger()


async def create_bootcamp(session: AsyncSession, body: CreateBootcampRequest) -> Bootcamp:
    bootcamp = Bootcamp(**body.model_dump())
    session.add(bootcamp)
    await session.commit()
    await session.refresh(bootcamp)
    log.info("bootcamp_created", bootcamp_id=bootcamp.id)
    return bootcamp


async def store_bootcamp_photo(
    session: AsyncSession,
    bootcamp_id: int,
    upload: UploadFile | list[UploadFile] | None,
    upload_dir: Path,
    max_bytes: int,
) -> str:
    """Validate an uploaded image, write it as ``photo_<id><ext>`` and record it."""
    bootcamp = await get_resource(session, Bootcamp, bootcamp_id)

    if upload is None:
        raise ErrorResponse("Please upload a file", 400)
    if isinstance(upload, list):
        raise ErrorResponse("Please upload a single file", 400)
    if not (upload.content_type or "").startswith("image"):
        raise ErrorResponse("Please upload an image file", 400)

    data = await upload.read()
    if len(data) > max_bytes:
        raise ErrorResponse(f"Please upload an image less than {max_bytes} bytes", 400)

    filename = f"photo_{bootcamp.id}{Path(upload.filename or '').suffix}"
    upload_dir.mkdir(parents=True, exist_ok=True)
    await asyncio.to_thread((upload_dir / filename).write_bytes, data)

    bootcamp.photo = filename
    await session.commit()
    log.info("bootcamp_photo_stored", bootcamp_id=bootcamp.id, filename=filename, size=len(data))
    return filename
