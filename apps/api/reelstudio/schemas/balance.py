"""Balance and token transaction schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

TransactionType = Literal["reserve", "consume", "release", "purchase", "bonus"]


class Balance(BaseModel):
    user_id: str
    balance: int
    reserved: int
    available: int
    total_purchased: int
    total_consumed: int


class TokenTransaction(BaseModel):
    id: int
    type: TransactionType
    amount: int
    balance_after: int
    description: str | None = None
    job_id: str | None = None
    created_at: datetime


class TokenTransactionList(BaseModel):
    items: list[TokenTransaction]


class CreditRequest(BaseModel):
    amount: int = Field(gt=0)
    kind: Literal["purchase", "bonus"] = "purchase"
    description: str | None = None
