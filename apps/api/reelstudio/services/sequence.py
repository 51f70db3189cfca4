"""Two-phase reindexing of job positions within a (work, sub-unit) scope.

Shifting or permuting positions under a unique (work_id, sub_unit, position)
constraint collides with not-yet-moved rows, so every moving job is first
parked on a negative scratch position and only then given its final value.
Both phases run inside the caller's transaction; a failure anywhere rolls the
whole scope back and no scratch position is ever committed.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging

from sqlalchemy.orm import Session

from reelstudio.core.logging_config import safe_log_identifier
from reelstudio.errors import ReindexConflictError
from reelstudio.repositories.jobs import JobRecord, JobRepository
from reelstudio.schemas.job import JobStatus

logger = logging.getLogger(__name__)

# Real positions start at 1, so -(position + offset) never meets one.
SCRATCH_OFFSET = 1000


@dataclass(slots=True, frozen=True)
class PositionChange:
    job_id: str
    new_position: int


class SequenceReindexer:
    def __init__(self, session: Session) -> None:
        self._jobs = JobRepository(session)

    def insert_after(
        self,
        *,
        work_id: str,
        sub_unit: int,
        after_position: int | None,
        prompt: str,
        status: JobStatus = JobStatus.PENDING,
        token_cost: int | None = None,
        **fields,
    ) -> JobRecord:
        """Create a job at after_position + 1, shifting later jobs up by one.

        ``after_position=None`` appends after the current tail.
        """
        tail = self._jobs.max_position(work_id=work_id, sub_unit=sub_unit)
        if after_position is None or after_position >= tail:
            target = (tail if after_position is None else after_position) + 1
            return self._jobs.insert(
                work_id=work_id,
                sub_unit=sub_unit,
                position=target,
                prompt=prompt,
                status=status,
                token_cost=token_cost,
                **fields,
            )

        target = after_position + 1
        to_shift = self._jobs.positions_from(work_id=work_id, sub_unit=sub_unit, min_position=target)

        # Phase 1: highest first, so no partial write lands on an unmoved job.
        for job_id, position in to_shift:
            self._jobs.set_position(job_id, -(position + SCRATCH_OFFSET))
        # Phase 2: every shifted job is parked, so final values are free.
        for job_id, position in to_shift:
            self._jobs.set_position(job_id, position + 1)

        record = self._jobs.insert(
            work_id=work_id,
            sub_unit=sub_unit,
            position=target,
            prompt=prompt,
            status=status,
            token_cost=token_cost,
            **fields,
        )
        logger.info(
            "sequence.inserted work_id=%s sub_unit=%s position=%s shifted=%s",
            safe_log_identifier(work_id, prefix="wid"),
            sub_unit,
            target,
            len(to_shift),
        )
        return record

    def reorder(self, *, work_id: str, sub_unit: int, changes: list[PositionChange]) -> int:
        """Apply an explicit job -> position mapping; returns the number of jobs moved."""
        if not changes:
            return 0

        current = self._jobs.scope_positions(work_id=work_id, sub_unit=sub_unit)
        self._validate(current=current, changes=changes)

        moving = [change for change in changes if current[change.job_id] != change.new_position]
        if not moving:
            return 0

        ranked = sorted(moving, key=lambda change: change.new_position)
        for rank, change in enumerate(ranked, start=1):
            self._jobs.set_position(change.job_id, -rank)
        for change in ranked:
            self._jobs.set_position(change.job_id, change.new_position)

        logger.info(
            "sequence.reordered work_id=%s sub_unit=%s moved=%s",
            safe_log_identifier(work_id, prefix="wid"),
            sub_unit,
            len(moving),
        )
        return len(moving)

    @staticmethod
    def _validate(*, current: dict[str, int], changes: list[PositionChange]) -> None:
        job_ids = [change.job_id for change in changes]
        duplicate_ids = sorted({job_id for job_id in job_ids if job_ids.count(job_id) > 1})
        if duplicate_ids:
            raise ReindexConflictError("A job appears more than once in the mapping.", {"job_ids": duplicate_ids})

        unknown = sorted(job_id for job_id in job_ids if job_id not in current)
        if unknown:
            raise ReindexConflictError("Mapping references jobs outside this scope.", {"job_ids": unknown})

        invalid = sorted(change.new_position for change in changes if change.new_position < 1)
        if invalid:
            raise ReindexConflictError("Positions must be positive.", {"positions": invalid})

        final = dict(current)
        final.update({change.job_id: change.new_position for change in changes})
        seen: set[int] = set()
        collisions: set[int] = set()
        for position in final.values():
            if position in seen:
                collisions.add(position)
            seen.add(position)
        if collisions:
            raise ReindexConflictError(
                "Mapping does not produce unique positions.",
                {"positions": sorted(collisions)},
            )
