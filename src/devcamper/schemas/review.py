from datetime import datetime

from pydantic import BaseModel


class ReviewResponse(BaseModel):
    id: int
    title: str
    text: str
    rating: int
    bootcamp_id: int
    user_id: int
    created_at: datetime

    model_config = {"from_attributes": True}
