"""Provider reconciliation: pull task state and settle reservations exactly once.

Any number of readers may reconcile the same job concurrently. The status
change is a conditional update that only matches while the job is still
active, and settlement runs in the same transaction only when that update
changed exactly one row. A caller that loses the race does nothing further.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from reelstudio.adapters.provider import ProviderError, ProviderTaskResult, VideoProvider
from reelstudio.core.logging_config import safe_log_identifier
from reelstudio.domain.job_fsm import ACTIVE_STATES, TERMINAL_STATES, is_forward_transition
from reelstudio.repositories.database import Database
from reelstudio.repositories.jobs import JobRecord, JobRepository
from reelstudio.repositories.works import WorkRepository
from reelstudio.schemas.job import JobStatus
from reelstudio.services.ledger import ReservationLedger

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ReconciliationReport:
    examined: int = 0
    transitioned: int = 0
    settled: int = 0
    lost_races: int = 0
    query_failures: int = 0
    store_failures: int = 0


@dataclass(slots=True)
class ReconciliationResult:
    report: ReconciliationReport
    jobs: list[JobRecord] = field(default_factory=list)


def is_reconcilable(job: JobRecord) -> bool:
    return job.status in ACTIVE_STATES and bool(job.provider_task_id) and bool(job.model)


class ReconciliationEngine:
    def __init__(self, database: Database, provider: VideoProvider) -> None:
        self._database = database
        self._provider = provider

    def reconcile(self, jobs: list[JobRecord]) -> ReconciliationResult:
        """Bring in-flight jobs up to date with the provider.

        Returns the same jobs in the same order, with every job this call
        touched (or found already moved by someone else) re-read from the
        store. Provider and store errors are isolated per job.
        """
        report = ReconciliationReport()
        candidates = [job for job in jobs if is_reconcilable(job)]
        if not candidates:
            return ReconciliationResult(report=report, jobs=list(jobs))

        with self._database.transaction() as session:
            owners = WorkRepository(session).owners_for(job.work_id for job in candidates)

        refreshed: dict[str, JobRecord] = {}
        for job in candidates:
            report.examined += 1
            safe_job_id = safe_log_identifier(job.id, prefix="jid")
            try:
                result = self._provider.query_status(model=job.model or "", task_id=job.provider_task_id or "")
            except ProviderError as exc:
                report.query_failures += 1
                logger.warning("reconcile.query_failed job_id=%s reason=%s", safe_job_id, exc)
                continue

            if result.status == job.status or not is_forward_transition(job.status, result.status):
                continue

            try:
                updated = self._apply(job=job, result=result, owner_id=owners.get(job.work_id), report=report)
            except (SQLAlchemyError, LookupError) as exc:
                report.store_failures += 1
                logger.error(
                    "reconcile.store_failed job_id=%s target_status=%s reason=%s",
                    safe_job_id,
                    result.status.value,
                    type(exc).__name__,
                )
                continue
            if updated is not None:
                refreshed[job.id] = updated

        logger.info(
            "reconcile.completed examined=%s transitioned=%s settled=%s lost_races=%s query_failures=%s store_failures=%s",
            report.examined,
            report.transitioned,
            report.settled,
            report.lost_races,
            report.query_failures,
            report.store_failures,
        )
        return ReconciliationResult(report=report, jobs=[refreshed.get(job.id, job) for job in jobs])

    def reconcile_active(self, *, limit: int) -> ReconciliationReport:
        """Run one pass over the oldest in-flight jobs across all works."""
        with self._database.transaction() as session:
            jobs = JobRepository(session).list_reconcilable(limit=limit)
        return self.reconcile(jobs).report

    def _apply(
        self,
        *,
        job: JobRecord,
        result: ProviderTaskResult,
        owner_id: str | None,
        report: ReconciliationReport,
    ) -> JobRecord | None:
        safe_job_id = safe_log_identifier(job.id, prefix="jid")
        with self._database.transaction() as session:
            repository = JobRepository(session)
            changed = repository.compare_and_set_status(
                job_id=job.id,
                expected=ACTIVE_STATES,
                new_status=result.status,
                extra=self._completion_fields(result),
            )
            if changed != 1:
                report.lost_races += 1
                logger.info(
                    "reconcile.lost_race job_id=%s target_status=%s",
                    safe_job_id,
                    result.status.value,
                )
                return repository.get(job.id)

            settled = result.status in TERMINAL_STATES and self._settle(
                session=session,
                job=job,
                status=result.status,
                owner_id=owner_id,
            )
            updated = repository.get(job.id)

        # Counted only once the status change and its settlement have committed.
        report.transitioned += 1
        if settled:
            report.settled += 1
        logger.info(
            "reconcile.transitioned job_id=%s from_status=%s to_status=%s settled=%s",
            safe_job_id,
            job.status.value,
            result.status.value,
            settled,
        )
        return updated

    @staticmethod
    def _completion_fields(result: ProviderTaskResult) -> dict[str, Any]:
        if result.status is JobStatus.DONE:
            return {"result_url": result.result_url, "error_message": None, "completed_at": datetime.now(UTC)}
        if result.status is JobStatus.FAILED:
            return {"error_message": result.error_message or "Generation failed", "completed_at": datetime.now(UTC)}
        return {}

    @staticmethod
    def _settle(*, session, job: JobRecord, status: JobStatus, owner_id: str | None) -> bool:
        if not job.token_cost:
            return False
        if owner_id is None:
            # Rolls back the status change so the job stays active for the next pass.
            raise LookupError(f"No owner resolved for work {job.work_id}")

        ledger = ReservationLedger(session)
        if status is JobStatus.DONE:
            ledger.confirm_deduction(owner_id, job.token_cost, job_id=job.id)
        else:
            ledger.refund_reservation(owner_id, job.token_cost, f"Generation failed, refunded {job.token_cost} coins", job_id=job.id)
        return True


__all__ = ["ReconciliationEngine", "ReconciliationReport", "ReconciliationResult", "is_reconcilable"]
