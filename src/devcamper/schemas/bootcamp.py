from datetime import datetime

from pydantic import BaseModel, Field


class CreateBootcampRequest(BaseModel):
    name: str = Field(min_length=1, max_length=50)
    description: str = Field(min_length=1, max_length=500)
    website: str | None = None
    email: str | None = None
    average_cost: float | None = Field(default=None, ge=0)


class BootcampResponse(BaseModel):
    id: int
    name: str
    description: str
    website: str | None = None
    email: str | None = None
    average_cost: float | None = None
    photo: str
    created_at: datetime

    model_config = {"from_attributes": True}
