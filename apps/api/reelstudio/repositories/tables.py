"""ORM table definitions."""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utc_now() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    pass


class WorkRow(Base):
    __tablename__ = "works"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    owner_id: Mapped[str] = mapped_column(String(128), index=True)
    title: Mapped[str] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)


class JobRow(Base):
    __tablename__ = "jobs"
    __table_args__ = (
        UniqueConstraint("work_id", "sub_unit", "position", name="uq_jobs_scope_position"),
        CheckConstraint("token_cost IS NULL OR token_cost >= 0", name="ck_jobs_token_cost_non_negative"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    work_id: Mapped[str] = mapped_column(ForeignKey("works.id", ondelete="CASCADE"), index=True)
    sub_unit: Mapped[int] = mapped_column(Integer)
    position: Mapped[int] = mapped_column(Integer)

    prompt: Mapped[str] = mapped_column(Text)
    shot_type: Mapped[str | None] = mapped_column(String(64))
    camera_move: Mapped[str | None] = mapped_column(String(64))
    scene_num: Mapped[int | None] = mapped_column(Integer)
    model: Mapped[str | None] = mapped_column(String(64))
    resolution: Mapped[str | None] = mapped_column(String(16))
    duration_sec: Mapped[int] = mapped_column(Integer, default=5)

    status: Mapped[str] = mapped_column(String(16), index=True)
    provider_task_id: Mapped[str | None] = mapped_column(String(128))
    result_url: Mapped[str | None] = mapped_column(Text)
    error_message: Mapped[str | None] = mapped_column(Text)
    token_cost: Mapped[int | None] = mapped_column(Integer)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=utc_now)


class BalanceRow(Base):
    __tablename__ = "balances"
    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_balances_balance_non_negative"),
        CheckConstraint("reserved >= 0", name="ck_balances_reserved_non_negative"),
        CheckConstraint("reserved <= balance", name="ck_balances_reserved_within_balance"),
        CheckConstraint("total_purchased >= 0", name="ck_balances_total_purchased_non_negative"),
        CheckConstraint("total_consumed >= 0", name="ck_balances_total_consumed_non_negative"),
    )

    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    balance: Mapped[int] = mapped_column(Integer, default=0)
    reserved: Mapped[int] = mapped_column(Integer, default=0)
    total_purchased: Mapped[int] = mapped_column(Integer, default=0)
    total_consumed: Mapped[int] = mapped_column(Integer, default=0)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)


class TokenTransactionRow(Base):
    __tablename__ = "token_transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(128), index=True)
    type: Mapped[str] = mapped_column(String(16))
    amount: Mapped[int] = mapped_column(Integer)
    balance_after: Mapped[int] = mapped_column(Integer)
    description: Mapped[str | None] = mapped_column(Text)
    job_id: Mapped[str | None] = mapped_column(String(36), index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)
