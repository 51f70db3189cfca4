"""Work API schemas."""

from datetime import datetime

from pydantic import BaseModel, Field


class CreateWorkRequest(BaseModel):
    title: str = Field(min_length=1)


class Work(BaseModel):
    id: str
    title: str
    created_at: datetime


class WorkList(BaseModel):
    items: list[Work]
