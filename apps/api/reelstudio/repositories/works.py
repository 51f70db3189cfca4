"""Work (parent record) persistence."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

from reelstudio.repositories.tables import WorkRow


@dataclass(slots=True)
class WorkRecord:
    id: str
    owner_id: str
    title: str
    created_at: datetime


class WorkRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create(self, *, owner_id: str, title: str) -> WorkRecord:
        row = WorkRow(id=str(uuid4()), owner_id=owner_id, title=title, created_at=datetime.now(UTC))
        self._session.add(row)
        self._session.flush()
        return self._to_record(row)

    def get_for_owner(self, *, owner_id: str, work_id: str) -> WorkRecord | None:
        row = self._session.get(WorkRow, work_id)
        if row is None or row.owner_id != owner_id:
            return None
        return self._to_record(row)

    def list_for_owner(self, owner_id: str) -> list[WorkRecord]:
        rows = self._session.scalars(
            select(WorkRow).where(WorkRow.owner_id == owner_id).order_by(WorkRow.created_at, WorkRow.id)
        )
        return [self._to_record(row) for row in rows]

    def owners_for(self, work_ids: Iterable[str]) -> dict[str, str]:
        """Resolve owners for a batch of works with a single query."""
        ids = sorted(set(work_ids))
        if not ids:
            return {}
        rows = self._session.execute(select(WorkRow.id, WorkRow.owner_id).where(WorkRow.id.in_(ids)))
        return {work_id: owner_id for work_id, owner_id in rows}

    @staticmethod
    def _to_record(row: WorkRow) -> WorkRecord:
        return WorkRecord(id=row.id, owner_id=row.owner_id, title=row.title, created_at=row.created_at)
