from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from devcamper.database import get_session
from devcamper.models.course import Course
from devcamper.schemas.course import CourseResponse
from devcamper.schemas.envelope import DataEnvelope, ListEnvelope
from devcamper.services.resources import get_resource, list_resources

router = APIRouter(tags=["courses"])


@router.get("")
async def list_courses(
    bootcamp: int | None = None,
    session: AsyncSession = Depends(get_session),
) -> ListEnvelope[CourseResponse]:
    courses = await list_resources(session, Course, bootcamp_id=bootcamp)
    return ListEnvelope(count=len(courses), data=[CourseResponse.model_validate(c) for c in courses])


@router.get("/{course_id}")
async def get_course(
    course_id: int,
    session: AsyncSession = Depends(get_session),
) -> DataEnvelope[CourseResponse]:
    course = await get_resource(session, Course, course_id)
    return DataEnvelope(data=CourseResponse.model_validate(course))
