"""API error response schemas."""

from typing import Any
from typing import Literal

from pydantic import BaseModel

from reelstudio.schemas.job import JobStatus


class ErrorResponse(BaseModel):
    code: str
    message: str
    details: dict[str, Any] | None = None


class NoLeakNotFoundError(BaseModel):
    code: Literal["RESOURCE_NOT_FOUND"]
    message: str


class TransitionErrorDetails(BaseModel):
    current_status: JobStatus
    attempted_status: JobStatus
    allowed_next_statuses: list[JobStatus] | None = None


class FsmTransitionError(BaseModel):
    code: Literal["FSM_TRANSITION_INVALID", "FSM_TERMINAL_IMMUTABLE"]
    message: str
    details: TransitionErrorDetails


class InsufficientFundsErrorDetails(BaseModel):
    required: int
    available: int


class InsufficientFundsError(BaseModel):
    code: Literal["INSUFFICIENT_FUNDS"]
    message: str
    details: InsufficientFundsErrorDetails


class ReindexConflictError(BaseModel):
    code: Literal["REINDEX_CONFLICT"]
    message: str
    details: dict[str, Any] | None = None


class UpstreamProviderError(BaseModel):
    code: Literal["PROVIDER_SUBMIT_FAILED"]
    message: str
    details: dict[str, Any] | None = None
