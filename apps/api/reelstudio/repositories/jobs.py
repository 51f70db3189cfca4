"""Job (segment) persistence.

Every mutation here is a single SQL statement executed immediately, in program
order. Position rewrites in particular must not be batched by the ORM unit of
work, which would reorder them by primary key and trip the scope-position
unique constraint.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from reelstudio.repositories.tables import JobRow
from reelstudio.schemas.job import JobStatus

DESCRIPTIVE_FIELDS = frozenset(
    {"prompt", "shot_type", "camera_move", "scene_num", "model", "resolution", "duration_sec"}
)


@dataclass(slots=True)
class JobRecord:
    id: str
    work_id: str
    sub_unit: int
    position: int
    prompt: str
    status: JobStatus
    duration_sec: int
    created_at: datetime
    shot_type: str | None = None
    camera_move: str | None = None
    scene_num: int | None = None
    model: str | None = None
    resolution: str | None = None
    provider_task_id: str | None = None
    result_url: str | None = None
    error_message: str | None = None
    token_cost: int | None = None
    completed_at: datetime | None = None
    updated_at: datetime | None = None


class JobRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, job_id: str) -> JobRecord | None:
        row = self._session.get(JobRow, job_id, populate_existing=True)
        return self._to_record(row) if row is not None else None

    def list_for_scope(self, *, work_id: str, sub_unit: int | None = None) -> list[JobRecord]:
        query = select(JobRow).where(JobRow.work_id == work_id)
        if sub_unit is not None:
            query = query.where(JobRow.sub_unit == sub_unit)
        query = query.order_by(JobRow.sub_unit, JobRow.position).execution_options(populate_existing=True)
        return [self._to_record(row) for row in self._session.scalars(query)]

    def list_reconcilable(self, *, limit: int) -> list[JobRecord]:
        """Jobs that hold a provider task and are still in flight, oldest first."""
        query = (
            select(JobRow)
            .where(
                JobRow.status.in_([JobStatus.SUBMITTED.value, JobStatus.GENERATING.value]),
                JobRow.provider_task_id.is_not(None),
                JobRow.model.is_not(None),
            )
            .order_by(JobRow.work_id, JobRow.updated_at, JobRow.id)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        return [self._to_record(row) for row in self._session.scalars(query)]

    def scope_positions(self, *, work_id: str, sub_unit: int) -> dict[str, int]:
        rows = self._session.execute(
            select(JobRow.id, JobRow.position).where(JobRow.work_id == work_id, JobRow.sub_unit == sub_unit)
        )
        return {job_id: position for job_id, position in rows}

    def positions_from(self, *, work_id: str, sub_unit: int, min_position: int) -> list[tuple[str, int]]:
        """Return (id, position) pairs at or above min_position, highest first."""
        rows = self._session.execute(
            select(JobRow.id, JobRow.position)
            .where(
                JobRow.work_id == work_id,
                JobRow.sub_unit == sub_unit,
                JobRow.position >= min_position,
            )
            .order_by(JobRow.position.desc())
        )
        return [(job_id, position) for job_id, position in rows]

    def max_position(self, *, work_id: str, sub_unit: int) -> int:
        value = self._session.scalar(
            select(func.max(JobRow.position)).where(JobRow.work_id == work_id, JobRow.sub_unit == sub_unit)
        )
        return int(value or 0)

    def set_position(self, job_id: str, position: int) -> None:
        self._session.execute(
            update(JobRow).where(JobRow.id == job_id).values(position=position),
            execution_options={"synchronize_session": False},
        )

    def insert(
        self,
        *,
        work_id: str,
        sub_unit: int,
        position: int,
        prompt: str,
        status: JobStatus = JobStatus.PENDING,
        token_cost: int | None = None,
        shot_type: str | None = None,
        camera_move: str | None = None,
        scene_num: int | None = None,
        model: str | None = None,
        resolution: str | None = None,
        duration_sec: int = 5,
    ) -> JobRecord:
        now = datetime.now(UTC)
        row = JobRow(
            id=str(uuid4()),
            work_id=work_id,
            sub_unit=sub_unit,
            position=position,
            prompt=prompt,
            shot_type=shot_type,
            camera_move=camera_move,
            scene_num=scene_num,
            model=model,
            resolution=resolution,
            duration_sec=duration_sec,
            status=status.value,
            token_cost=token_cost,
            created_at=now,
            updated_at=now,
        )
        self._session.add(row)
        self._session.flush()
        return self._to_record(row)

    def compare_and_set_status(
        self,
        *,
        job_id: str,
        expected: Iterable[JobStatus],
        new_status: JobStatus,
        extra: dict[str, Any] | None = None,
        require_no_task: bool = False,
    ) -> int:
        """Set status only while the row is still in an expected status.

        Returns the number of rows changed; exactly one means this caller
        performed the transition.
        """
        values: dict[str, Any] = {"status": new_status.value, "updated_at": datetime.now(UTC)}
        if extra:
            values.update(extra)
        statement = update(JobRow).where(
            JobRow.id == job_id,
            JobRow.status.in_([status.value for status in expected]),
        )
        if require_no_task:
            statement = statement.where(JobRow.provider_task_id.is_(None))
        result = self._session.execute(statement.values(**values), execution_options={"synchronize_session": False})
        return int(result.rowcount or 0)

    def attach_provider_task(self, *, job_id: str, provider_task_id: str) -> int:
        result = self._session.execute(
            update(JobRow)
            .where(
                JobRow.id == job_id,
                JobRow.status == JobStatus.SUBMITTED.value,
                JobRow.provider_task_id.is_(None),
            )
            .values(provider_task_id=provider_task_id, updated_at=datetime.now(UTC)),
            execution_options={"synchronize_session": False},
        )
        return int(result.rowcount or 0)

    def update_descriptive_fields(self, *, job_id: str, fields: dict[str, Any]) -> None:
        unknown = set(fields) - DESCRIPTIVE_FIELDS
        if unknown:
            raise ValueError(f"Non-descriptive job fields cannot be updated here: {sorted(unknown)}")
        if not fields:
            return
        self._session.execute(
            update(JobRow).where(JobRow.id == job_id).values(**fields, updated_at=datetime.now(UTC)),
            execution_options={"synchronize_session": False},
        )

    def delete_if_status(self, *, job_id: str, status: JobStatus) -> int:
        result = self._session.execute(
            delete(JobRow).where(JobRow.id == job_id, JobRow.status == status.value),
            execution_options={"synchronize_session": False},
        )
        return int(result.rowcount or 0)

    @staticmethod
    def _to_record(row: JobRow) -> JobRecord:
        return JobRecord(
            id=row.id,
            work_id=row.work_id,
            sub_unit=row.sub_unit,
            position=row.position,
            prompt=row.prompt,
            status=JobStatus(row.status),
            duration_sec=row.duration_sec,
            created_at=row.created_at,
            shot_type=row.shot_type,
            camera_move=row.camera_move,
            scene_num=row.scene_num,
            model=row.model,
            resolution=row.resolution,
            provider_task_id=row.provider_task_id,
            result_url=row.result_url,
            error_message=row.error_message,
            token_cost=row.token_cost,
            completed_at=row.completed_at,
            updated_at=row.updated_at,
        )
