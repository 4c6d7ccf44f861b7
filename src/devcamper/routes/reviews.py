from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from devcamper.database import get_session
from devcamper.models.review import Review
from devcamper.schemas.envelope import DataEnvelope, ListEnvelope
from devcamper.schemas.review import ReviewResponse
from devcamper.services.resources import get_resource, list_resources

router = APIRouter(tags=["reviews"])


@router.get("")
async def list_reviews(
    bootcamp: int | None = None,
    session: AsyncSession = Depends(get_session),
) -> ListEnvelope[ReviewResponse]:
    reviews = await list_resources(session, Review, bootcamp_id=bootcamp)
    return ListEnvelope(count=len(reviews), data=[ReviewResponse.model_validate(r) for r in reviews])


@router.get("/{review_id}")
async def get_review(
    review_id: int,
    session: AsyncSession = Depends(get_session),
) -> DataEnvelope[ReviewResponse]:
    review = await get_resource(session, Review, review_id)
    return DataEnvelope(data=ReviewResponse.model_validate(review))
