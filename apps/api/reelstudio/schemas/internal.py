"""Internal endpoint schemas."""

from pydantic import BaseModel, Field


class ReconcileRequest(BaseModel):
    limit: int | None = Field(default=None, ge=1, le=1000)


class ReconcileResponse(BaseModel):
    examined: int
    transitioned: int
    settled: int
    lost_races: int
    query_failures: int
    store_failures: int
