"""Balance service layer."""

from reelstudio.repositories.balances import BalanceRecord, BalanceRepository, TokenTransactionRecord
from reelstudio.repositories.database import Database
from reelstudio.schemas.balance import Balance, TokenTransaction
from reelstudio.services.ledger import ReservationLedger

_TRANSACTION_LIST_LIMIT = 100


class BalanceService:
    def __init__(self, database: Database) -> None:
        self._database = database

    def get_balance(self, *, user_id: str) -> Balance:
        with self._database.transaction() as session:
            record = BalanceRepository(session).get(user_id)
        if record is None:
            return Balance(user_id=user_id, balance=0, reserved=0, available=0, total_purchased=0, total_consumed=0)
        return self._to_balance(record)

    def list_transactions(self, *, user_id: str, limit: int = _TRANSACTION_LIST_LIMIT) -> list[TokenTransaction]:
        with self._database.transaction() as session:
            records = BalanceRepository(session).list_transactions(user_id, limit=limit)
        return [self._to_transaction(record) for record in records]

    def credit(self, *, user_id: str, amount: int, kind: str = "purchase", description: str | None = None) -> Balance:
        with self._database.transaction() as session:
            record = ReservationLedger(session).credit(user_id, amount, kind=kind, description=description)
        return self._to_balance(record)

    @staticmethod
    def _to_balance(record: BalanceRecord) -> Balance:
        return Balance(
            user_id=record.user_id,
            balance=record.balance,
            reserved=record.reserved,
            available=record.available,
            total_purchased=record.total_purchased,
            total_consumed=record.total_consumed,
        )

    @staticmethod
    def _to_transaction(record: TokenTransactionRecord) -> TokenTransaction:
        return TokenTransaction(
            id=record.id,
            type=record.type,
            amount=record.amount,
            balance_after=record.balance_after,
            description=record.description,
            job_id=record.job_id,
            created_at=record.created_at,
        )
