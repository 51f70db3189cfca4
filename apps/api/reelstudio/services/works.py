"""Work service layer."""

from reelstudio.errors import not_found
from reelstudio.repositories.database import Database
from reelstudio.repositories.works import WorkRecord, WorkRepository
from reelstudio.schemas.work import Work


class WorkService:
    def __init__(self, database: Database) -> None:
        self._database = database

    def create_work(self, *, owner_id: str, title: str) -> Work:
        with self._database.transaction() as session:
            record = WorkRepository(session).create(owner_id=owner_id, title=title)
        return self._to_work(record)

    def list_works(self, *, owner_id: str) -> list[Work]:
        with self._database.transaction() as session:
            records = WorkRepository(session).list_for_owner(owner_id)
        return [self._to_work(record) for record in records]

    def get_work(self, *, owner_id: str, work_id: str) -> Work:
        with self._database.transaction() as session:
            record = WorkRepository(session).get_for_owner(owner_id=owner_id, work_id=work_id)
        if record is None:
            raise not_found()
        return self._to_work(record)

    @staticmethod
    def _to_work(record: WorkRecord) -> Work:
        return Work(id=record.id, title=record.title, created_at=record.created_at)
