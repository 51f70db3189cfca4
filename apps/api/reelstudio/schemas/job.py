"""Job API schemas."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class JobStatus(str, Enum):
    PENDING = "pending"
    SUBMITTED = "submitted"
    GENERATING = "generating"
    DONE = "done"
    FAILED = "failed"


class Job(BaseModel):
    id: str
    work_id: str
    sub_unit: int
    position: int
    prompt: str
    shot_type: str | None = None
    camera_move: str | None = None
    scene_num: int | None = None
    model: str | None = None
    resolution: str | None = None
    duration_sec: int
    status: JobStatus
    provider_task_id: str | None = None
    result_url: str | None = None
    error_message: str | None = None
    token_cost: int | None = None
    completed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime | None = None


class JobList(BaseModel):
    items: list[Job]


class CreateJobRequest(BaseModel):
    sub_unit: int = Field(ge=1)
    # Omitted means append after the current tail of the scope.
    after_position: int | None = Field(default=None, ge=0)
    prompt: str = Field(min_length=1)
    shot_type: str | None = None
    camera_move: str | None = None
    scene_num: int | None = Field(default=None, ge=0)
    model: str | None = None
    resolution: str | None = None
    duration_sec: int = Field(default=5, ge=1, le=60)
    submit: bool = False


class UpdateJobFieldsRequest(BaseModel):
    """Descriptive fields only; execution fields are rejected as unknown keys."""

    model_config = ConfigDict(extra="forbid")

    prompt: str | None = Field(default=None, min_length=1)
    shot_type: str | None = None
    camera_move: str | None = None
    scene_num: int | None = Field(default=None, ge=0)
    model: str | None = None
    resolution: str | None = None
    duration_sec: int | None = Field(default=None, ge=1, le=60)

    @field_validator("prompt", "duration_sec")
    @classmethod
    def _reject_explicit_null(cls, value):
        if value is None:
            raise ValueError("may be omitted but not set to null")
        return value


class ReorderItem(BaseModel):
    job_id: str = Field(min_length=1)
    new_position: int


class ReorderRequest(BaseModel):
    sub_unit: int = Field(ge=1)
    order: list[ReorderItem]


class DeleteJobResponse(BaseModel):
    job_id: str
    refunded: int


class BatchSegment(BaseModel):
    prompt: str = Field(min_length=1)
    shot_type: str | None = None
    camera_move: str | None = None
    scene_num: int | None = Field(default=None, ge=0)
    duration_sec: int = Field(default=5, ge=1, le=60)


class BatchCreateJobsRequest(BaseModel):
    """Segments appended to one scope and submitted together under a single reservation."""

    sub_unit: int = Field(ge=1)
    model: str = Field(min_length=1)
    resolution: str = Field(min_length=1)
    segments: list[BatchSegment] = Field(min_length=1, max_length=100)


class BatchCreateJobsResponse(BaseModel):
    items: list[Job]
    total_cost: int


class ResetScopeResponse(BaseModel):
    deleted: int
    refunded: int
