"""Reservation ledger: reserve, confirm and refund token amounts.

The ledger runs inside the caller's transaction and never deduplicates
settlement. Callers settle a reservation at most once; the reconciliation
engine guarantees that with its conditional status update.
"""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from reelstudio.core.logging_config import safe_log_identifier
from reelstudio.errors import InsufficientFundsError
from reelstudio.repositories.balances import BalanceRecord, BalanceRepository

logger = logging.getLogger(__name__)


class ReservationLedger:
    def __init__(self, session: Session) -> None:
        self._balances = BalanceRepository(session)

    def reserve(self, user_id: str, amount: int, *, description: str | None = None, job_id: str | None = None) -> None:
        """Earmark amount against the user's available balance or raise InsufficientFundsError."""
        if amount < 0:
            raise ValueError("Reservation amount must be non-negative")

        safe_user_id = safe_log_identifier(user_id, prefix="uid")
        if not self._balances.try_reserve(user_id, amount):
            current = self._balances.get(user_id)
            available = current.available if current is not None else 0
            logger.info(
                "ledger.reserve_rejected user_id=%s required=%s available=%s",
                safe_user_id,
                amount,
                available,
            )
            raise InsufficientFundsError(required=amount, available=available)

        balance = self._require(user_id)
        self._balances.append_transaction(
            user_id=user_id,
            type_="reserve",
            amount=-amount,
            balance_after=balance.balance,
            description=description or f"Reserved {amount} coins",
            job_id=job_id,
        )
        logger.info(
            "ledger.reserved user_id=%s amount=%s reserved=%s balance=%s",
            safe_user_id,
            amount,
            balance.reserved,
            balance.balance,
        )

    def confirm_deduction(self, user_id: str, amount: int, *, job_id: str | None = None) -> None:
        safe_user_id = safe_log_identifier(user_id, prefix="uid")
        before = self._require(user_id)
        if before.reserved < amount:
            logger.warning(
                "ledger.confirm_clamped user_id=%s requested=%s reserved=%s",
                safe_user_id,
                amount,
                before.reserved,
            )

        self._balances.consume_reserved(user_id, amount)
        after = self._require(user_id)
        self._balances.append_transaction(
            user_id=user_id,
            type_="consume",
            amount=-amount,
            balance_after=after.balance,
            description=f"Consumed {amount} coins",
            job_id=job_id,
        )
        logger.info(
            "ledger.confirmed user_id=%s amount=%s reserved=%s balance=%s",
            safe_user_id,
            amount,
            after.reserved,
            after.balance,
        )

    def refund_reservation(self, user_id: str, amount: int, reason: str, *, job_id: str | None = None) -> None:
        safe_user_id = safe_log_identifier(user_id, prefix="uid")
        before = self._require(user_id)
        released = min(amount, max(before.reserved, 0))
        if released < amount:
            logger.warning(
                "ledger.refund_clamped user_id=%s requested=%s reserved=%s",
                safe_user_id,
                amount,
                before.reserved,
            )

        self._balances.release_reserved(user_id, amount)
        after = self._require(user_id)
        self._balances.append_transaction(
            user_id=user_id,
            type_="release",
            amount=released,
            balance_after=after.balance,
            description=reason,
            job_id=job_id,
        )
        logger.info(
            "ledger.refunded user_id=%s amount=%s reserved=%s balance=%s",
            safe_user_id,
            released,
            after.reserved,
            after.balance,
        )

    def credit(self, user_id: str, amount: int, *, kind: str = "purchase", description: str | None = None) -> BalanceRecord:
        if amount <= 0:
            raise ValueError("Credit amount must be positive")

        self._balances.add_funds(user_id, amount)
        after = self._require(user_id)
        default_description = f"Purchased {amount} coins" if kind == "purchase" else f"Bonus {amount} coins"
        self._balances.append_transaction(
            user_id=user_id,
            type_=kind,
            amount=amount,
            balance_after=after.balance,
            description=description or default_description,
        )
        logger.info(
            "ledger.credited user_id=%s kind=%s amount=%s balance=%s",
            safe_log_identifier(user_id, prefix="uid"),
            kind,
            amount,
            after.balance,
        )
        return after

    def _require(self, user_id: str) -> BalanceRecord:
        balance = self._balances.get(user_id)
        if balance is None:
            raise LookupError(f"No balance record for user {safe_log_identifier(user_id, prefix='uid')}")
        return balance
