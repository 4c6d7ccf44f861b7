from datetime import datetime

from pydantic import BaseModel


class CourseResponse(BaseModel):
    id: int
    title: str
    description: str
    weeks: int
    tuition: float
    minimum_skill: str
    bootcamp_id: int
    created_at: datetime

    model_config = {"from_attributes": True}
