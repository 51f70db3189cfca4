"""Balance store: per-user funds with single-statement atomic mutators."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy import case, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from reelstudio.repositories.tables import BalanceRow, TokenTransactionRow


@dataclass(slots=True)
class BalanceRecord:
    user_id: str
    balance: int
    reserved: int
    total_purchased: int
    total_consumed: int

    @property
    def available(self) -> int:
        return self.balance - self.reserved


@dataclass(slots=True)
class TokenTransactionRecord:
    id: int
    user_id: str
    type: str
    amount: int
    balance_after: int
    description: str | None
    job_id: str | None
    created_at: datetime


def _clamped_decrement(column, amount: int):
    return case((column >= amount, column - amount), else_=0)


class BalanceRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, user_id: str) -> BalanceRecord | None:
        row = self._session.get(BalanceRow, user_id, populate_existing=True)
        if row is None:
            return None
        return BalanceRecord(
            user_id=row.user_id,
            balance=row.balance,
            reserved=row.reserved,
            total_purchased=row.total_purchased,
            total_consumed=row.total_consumed,
        )

    def try_reserve(self, user_id: str, amount: int) -> bool:
        """Increment reserved only if the available amount covers it."""
        result = self._session.execute(
            update(BalanceRow)
            .where(
                BalanceRow.user_id == user_id,
                BalanceRow.balance - BalanceRow.reserved >= amount,
            )
            .values(reserved=BalanceRow.reserved + amount, updated_at=datetime.now(UTC)),
            execution_options={"synchronize_session": False},
        )
        return result.rowcount == 1

    def consume_reserved(self, user_id: str, amount: int) -> int:
        result = self._session.execute(
            update(BalanceRow)
            .where(BalanceRow.user_id == user_id)
            .values(
                balance=BalanceRow.balance - amount,
                reserved=_clamped_decrement(BalanceRow.reserved, amount),
                total_consumed=BalanceRow.total_consumed + amount,
                updated_at=datetime.now(UTC),
            ),
            execution_options={"synchronize_session": False},
        )
        return int(result.rowcount or 0)

    def release_reserved(self, user_id: str, amount: int) -> int:
        result = self._session.execute(
            update(BalanceRow)
            .where(BalanceRow.user_id == user_id)
            .values(
                reserved=_clamped_decrement(BalanceRow.reserved, amount),
                updated_at=datetime.now(UTC),
            ),
            execution_options={"synchronize_session": False},
        )
        return int(result.rowcount or 0)

    def add_funds(self, user_id: str, amount: int) -> None:
        """Create the balance row on first funding, otherwise increment it."""
        now = datetime.now(UTC)
        dialect = self._session.get_bind().dialect.name
        insert_factory = postgresql.insert if dialect == "postgresql" else sqlite.insert
        statement = insert_factory(BalanceRow).values(
            user_id=user_id,
            balance=amount,
            reserved=0,
            total_purchased=amount,
            total_consumed=0,
            updated_at=now,
        )
        statement = statement.on_conflict_do_update(
            index_elements=[BalanceRow.user_id],
            set_={
                "balance": BalanceRow.balance + amount,
                "total_purchased": BalanceRow.total_purchased + amount,
                "updated_at": now,
            },
        )
        self._session.execute(statement)

    def append_transaction(
        self,
        *,
        user_id: str,
        type_: str,
        amount: int,
        balance_after: int,
        description: str | None,
        job_id: str | None = None,
    ) -> None:
        self._session.add(
            TokenTransactionRow(
                user_id=user_id,
                type=type_,
                amount=amount,
                balance_after=balance_after,
                description=description,
                job_id=job_id,
                created_at=datetime.now(UTC),
            )
        )
        self._session.flush()

    def list_transactions(self, user_id: str, *, limit: int) -> list[TokenTransactionRecord]:
        rows = self._session.scalars(
            select(TokenTransactionRow)
            .where(TokenTransactionRow.user_id == user_id)
            .order_by(TokenTransactionRow.id.desc())
            .limit(limit)
        )
        return [
            TokenTransactionRecord(
                id=row.id,
                user_id=row.user_id,
                type=row.type,
                amount=row.amount,
                balance_after=row.balance_after,
                description=row.description,
                job_id=row.job_id,
                created_at=row.created_at,
            )
            for row in rows
        ]
