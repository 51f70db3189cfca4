"""Job service layer."""

from __future__ import annotations

from datetime import UTC, datetime
import logging

from sqlalchemy.orm import Session

from reelstudio.adapters.provider import ProviderError, ProviderSubmission, VideoProvider
from reelstudio.core.logging_config import safe_log_identifier
from reelstudio.domain.job_fsm import ACTIVE_STATES, allowed_next_statuses, ensure_transition
from reelstudio.domain.pricing import calculate_token_cost
from reelstudio.errors import ApiError, not_found
from reelstudio.repositories.database import Database
from reelstudio.repositories.jobs import JobRecord, JobRepository
from reelstudio.repositories.works import WorkRepository
from reelstudio.schemas.job import (
    BatchCreateJobsRequest,
    BatchCreateJobsResponse,
    CreateJobRequest,
    DeleteJobResponse,
    Job,
    JobList,
    JobStatus,
    ReorderRequest,
    ResetScopeResponse,
    UpdateJobFieldsRequest,
)
from reelstudio.services.ledger import ReservationLedger
from reelstudio.services.reconciliation import ReconciliationEngine
from reelstudio.services.sequence import PositionChange, SequenceReindexer

logger = logging.getLogger(__name__)

# Fields the token cost is computed from; frozen once a reservation exists.
_COST_BASIS_FIELDS = frozenset({"model", "resolution", "duration_sec"})


class JobService:
    def __init__(self, database: Database, provider: VideoProvider, engine: ReconciliationEngine) -> None:
        self._database = database
        self._provider = provider
        self._engine = engine

    def create_job(self, *, owner_id: str, work_id: str, payload: CreateJobRequest) -> Job:
        fields = payload.model_dump(exclude={"sub_unit", "after_position", "prompt", "submit"})
        token_cost = None
        status = JobStatus.PENDING
        if payload.submit:
            token_cost = calculate_token_cost(payload.model, payload.resolution, payload.duration_sec)
            status = JobStatus.SUBMITTED

        with self._database.transaction() as session:
            if WorkRepository(session).get_for_owner(owner_id=owner_id, work_id=work_id) is None:
                raise not_found()
            record = SequenceReindexer(session).insert_after(
                work_id=work_id,
                sub_unit=payload.sub_unit,
                after_position=payload.after_position,
                prompt=payload.prompt,
                status=status,
                token_cost=token_cost,
                **fields,
            )
            # Raises before commit when funds are short, so the insert and shift roll back too.
            if token_cost:
                ReservationLedger(session).reserve(
                    owner_id,
                    token_cost,
                    description=f"Reserved {token_cost} coins for generation",
                    job_id=record.id,
                )

        logger.info(
            "job.created job_id=%s work_id=%s sub_unit=%s position=%s status=%s",
            safe_log_identifier(record.id, prefix="jid"),
            safe_log_identifier(work_id, prefix="wid"),
            record.sub_unit,
            record.position,
            record.status.value,
        )
        if status is JobStatus.SUBMITTED:
            record = self._dispatch(owner_id=owner_id, record=record)
        return self._to_job(record)

    def submit_job(self, *, owner_id: str, job_id: str) -> Job:
        with self._database.transaction() as session:
            record = self._load_owned_job(session, owner_id=owner_id, job_id=job_id)
            ensure_transition(record.status, JobStatus.SUBMITTED)
            token_cost = calculate_token_cost(record.model, record.resolution, record.duration_sec)

            repository = JobRepository(session)
            changed = repository.compare_and_set_status(
                job_id=record.id,
                expected=[JobStatus.PENDING],
                new_status=JobStatus.SUBMITTED,
                extra={"token_cost": token_cost},
            )
            if changed != 1:
                raise ApiError(
                    status_code=409,
                    code="FSM_TRANSITION_INVALID",
                    message="Invalid status transition",
                    details={
                        "current_status": record.status,
                        "attempted_status": JobStatus.SUBMITTED,
                        "allowed_next_statuses": allowed_next_statuses(record.status),
                    },
                )
            if token_cost:
                ReservationLedger(session).reserve(
                    owner_id,
                    token_cost,
                    description=f"Reserved {token_cost} coins for generation",
                    job_id=record.id,
                )
            record = repository.get(record.id) or record

        return self._to_job(self._dispatch(owner_id=owner_id, record=record))

    def get_job(self, *, owner_id: str, job_id: str) -> Job:
        with self._database.transaction() as session:
            record = self._load_owned_job(session, owner_id=owner_id, job_id=job_id)

        result = self._engine.reconcile([record])
        return self._to_job(result.jobs[0])

    def list_jobs(self, *, owner_id: str, work_id: str, sub_unit: int | None = None) -> JobList:
        with self._database.transaction() as session:
            if WorkRepository(session).get_for_owner(owner_id=owner_id, work_id=work_id) is None:
                raise not_found()
            records = JobRepository(session).list_for_scope(work_id=work_id, sub_unit=sub_unit)

        result = self._engine.reconcile(records)
        return JobList(items=[self._to_job(record) for record in result.jobs])

    def update_job_fields(self, *, owner_id: str, job_id: str, payload: UpdateJobFieldsRequest) -> Job:
        fields = payload.model_dump(exclude_unset=True)

        with self._database.transaction() as session:
            record = self._load_owned_job(session, owner_id=owner_id, job_id=job_id)
            locked = sorted(_COST_BASIS_FIELDS.intersection(fields))
            if locked and record.status is not JobStatus.PENDING:
                raise ApiError(
                    status_code=409,
                    code="JOB_FIELDS_LOCKED",
                    message="Cost fields can only change before the job is submitted.",
                    details={"current_status": record.status, "fields": locked},
                )
            repository = JobRepository(session)
            repository.update_descriptive_fields(job_id=record.id, fields=fields)
            updated = repository.get(record.id) or record

        return self._to_job(updated)

    def reorder_jobs(self, *, owner_id: str, work_id: str, payload: ReorderRequest) -> JobList:
        changes = [PositionChange(job_id=item.job_id, new_position=item.new_position) for item in payload.order]
        with self._database.transaction() as session:
            if WorkRepository(session).get_for_owner(owner_id=owner_id, work_id=work_id) is None:
                raise not_found()
            SequenceReindexer(session).reorder(work_id=work_id, sub_unit=payload.sub_unit, changes=changes)
            records = JobRepository(session).list_for_scope(work_id=work_id, sub_unit=payload.sub_unit)

        return JobList(items=[self._to_job(record) for record in records])

    def create_batch(self, *, owner_id: str, work_id: str, payload: BatchCreateJobsRequest) -> BatchCreateJobsResponse:
        """Append and submit several segments under one combined reservation.

        Either every segment is stored and the total is reserved, or nothing is.
        Provider rejections afterwards fail and refund only the affected job.
        """
        costs = [
            calculate_token_cost(payload.model, payload.resolution, segment.duration_sec)
            for segment in payload.segments
        ]
        total_cost = sum(costs)

        with self._database.transaction() as session:
            if WorkRepository(session).get_for_owner(owner_id=owner_id, work_id=work_id) is None:
                raise not_found()
            reindexer = SequenceReindexer(session)
            records = [
                reindexer.insert_after(
                    work_id=work_id,
                    sub_unit=payload.sub_unit,
                    after_position=None,
                    status=JobStatus.SUBMITTED,
                    token_cost=cost,
                    model=payload.model,
                    resolution=payload.resolution,
                    **segment.model_dump(),
                )
                for segment, cost in zip(payload.segments, costs)
            ]
            if total_cost:
                ReservationLedger(session).reserve(
                    owner_id,
                    total_cost,
                    description=f"Reserved {total_cost} coins for {len(records)} segments",
                )

        logger.info(
            "job.batch_created work_id=%s sub_unit=%s count=%s total_cost=%s",
            safe_log_identifier(work_id, prefix="wid"),
            payload.sub_unit,
            len(records),
            total_cost,
        )
        dispatched = []
        for record in records:
            try:
                dispatched.append(self._send(owner_id=owner_id, record=record))
            except ProviderError:
                dispatched.append(self._reload(record))
        return BatchCreateJobsResponse(items=[self._to_job(record) for record in dispatched], total_cost=total_cost)

    def reset_scope(self, *, owner_id: str, work_id: str, sub_unit: int) -> ResetScopeResponse:
        """Delete every job in a scope, releasing the reservations still held by in-flight ones."""
        with self._database.transaction() as session:
            if WorkRepository(session).get_for_owner(owner_id=owner_id, work_id=work_id) is None:
                raise not_found()
            repository = JobRepository(session)
            records = repository.list_for_scope(work_id=work_id, sub_unit=sub_unit)
            for record in records:
                if repository.delete_if_status(job_id=record.id, status=record.status) != 1:
                    raise ApiError(
                        status_code=409,
                        code="JOB_STATE_CHANGED",
                        message="A job changed while the scope was being reset; retry the request.",
                    )

            refunded = sum(record.token_cost or 0 for record in records if record.status in ACTIVE_STATES)
            if refunded:
                ReservationLedger(session).refund_reservation(
                    owner_id,
                    refunded,
                    f"Scope reset, refunded {refunded} coins",
                )

        logger.info(
            "job.scope_reset work_id=%s sub_unit=%s deleted=%s refunded=%s",
            safe_log_identifier(work_id, prefix="wid"),
            sub_unit,
            len(records),
            refunded,
        )
        return ResetScopeResponse(deleted=len(records), refunded=refunded)

    def delete_job(self, *, owner_id: str, job_id: str) -> DeleteJobResponse:
        """Delete a job, releasing its reservation if it still holds one."""
        with self._database.transaction() as session:
            record = self._load_owned_job(session, owner_id=owner_id, job_id=job_id)
            if JobRepository(session).delete_if_status(job_id=record.id, status=record.status) != 1:
                raise ApiError(
                    status_code=409,
                    code="JOB_STATE_CHANGED",
                    message="Job changed while it was being deleted; retry the request.",
                )

            refunded = 0
            if record.status in ACTIVE_STATES and record.token_cost:
                ReservationLedger(session).refund_reservation(
                    owner_id,
                    record.token_cost,
                    f"Job deleted, refunded {record.token_cost} coins",
                    job_id=record.id,
                )
                refunded = record.token_cost

        logger.info(
            "job.deleted job_id=%s status=%s refunded=%s",
            safe_log_identifier(record.id, prefix="jid"),
            record.status.value,
            refunded,
        )
        return DeleteJobResponse(job_id=record.id, refunded=refunded)

    def _dispatch(self, *, owner_id: str, record: JobRecord) -> JobRecord:
        try:
            return self._send(owner_id=owner_id, record=record)
        except ProviderError as exc:
            raise ApiError(
                status_code=502,
                code="PROVIDER_SUBMIT_FAILED",
                message="Failed to submit the job to the video provider",
            ) from exc

    def _send(self, *, owner_id: str, record: JobRecord) -> JobRecord:
        """Hand a submitted job to the provider; a rejected submission fails the job, refunds it and re-raises."""
        safe_job_id = safe_log_identifier(record.id, prefix="jid")
        submission = ProviderSubmission(
            model=record.model or "",
            prompt=record.prompt,
            resolution=record.resolution,
            duration_sec=record.duration_sec,
        )

        try:
            task_id = self._provider.submit(submission)
        except ProviderError as exc:
            logger.warning("job.dispatch_failed job_id=%s code=PROVIDER_SUBMIT_FAILED reason=%s", safe_job_id, exc)
            self._fail_submission(owner_id=owner_id, record=record, reason=str(exc))
            raise

        with self._database.transaction() as session:
            repository = JobRepository(session)
            if repository.attach_provider_task(job_id=record.id, provider_task_id=task_id) != 1:
                logger.warning("job.dispatch_orphaned job_id=%s reason=job_changed_during_submit", safe_job_id)
            updated = repository.get(record.id)

        logger.info(
            "job.dispatched job_id=%s task_id=%s",
            safe_job_id,
            safe_log_identifier(task_id, prefix="tid"),
        )
        return updated or record

    def _fail_submission(self, *, owner_id: str, record: JobRecord, reason: str) -> None:
        with self._database.transaction() as session:
            changed = JobRepository(session).compare_and_set_status(
                job_id=record.id,
                expected=[JobStatus.SUBMITTED],
                new_status=JobStatus.FAILED,
                extra={"error_message": f"Submission failed: {reason}", "completed_at": datetime.now(UTC)},
                require_no_task=True,
            )
            if changed == 1 and record.token_cost:
                ReservationLedger(session).refund_reservation(
                    owner_id,
                    record.token_cost,
                    f"Submission failed, refunded {record.token_cost} coins",
                    job_id=record.id,
                )

    def _reload(self, record: JobRecord) -> JobRecord:
        with self._database.transaction() as session:
            return JobRepository(session).get(record.id) or record

    @staticmethod
    def _load_owned_job(session: Session, *, owner_id: str, job_id: str) -> JobRecord:
        record = JobRepository(session).get(job_id)
        if record is None:
            raise not_found()
        if WorkRepository(session).get_for_owner(owner_id=owner_id, work_id=record.work_id) is None:
            raise not_found()
        return record

    @staticmethod
    def _to_job(record: JobRecord) -> Job:
        return Job(
            id=record.id,
            work_id=record.work_id,
            sub_unit=record.sub_unit,
            position=record.position,
            prompt=record.prompt,
            shot_type=record.shot_type,
            camera_move=record.camera_move,
            scene_num=record.scene_num,
            model=record.model,
            resolution=record.resolution,
            duration_sec=record.duration_sec,
            status=record.status,
            provider_task_id=record.provider_task_id,
            result_url=record.result_url,
            error_message=record.error_message,
            token_cost=record.token_cost,
            completed_at=record.completed_at,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )
