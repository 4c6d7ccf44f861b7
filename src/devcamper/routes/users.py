from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from devcamper.database import get_session
from devcamper.models.user import User
from devcamper.schemas.envelope import DataEnvelope, ListEnvelope
from devcamper.schemas.user import UserResponse
from devcamper.services.resources import get_resource, list_resources

router = APIRouter(tags=["users"])


@router.get("")
async def list_users(
    session: AsyncSession = Depends(get_session),
) -> ListEnvelope[UserResponse]:
    users = await list_resources(session, User)
    return ListEnvelope(count=len(users), data=[UserResponse.model_validate(u) for u in users])


@router.get("/{user_id}")
async def get_user(
    user_id: int,
    session: AsyncSession = Depends(get_session),
) -> DataEnvelope[UserResponse]:
    user = await get_resource(session, User, user_id)
    return DataEnvelope(data=UserResponse.model_validate(user))
