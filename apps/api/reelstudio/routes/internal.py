"""Internal routes for the background poller and the payment subsystem."""

from typing import Annotated

from fastapi import APIRouter, Depends, Path

from reelstudio.core.config import Settings, get_settings
from reelstudio.routes.dependencies import (
    get_balance_service,
    get_reconciliation_engine,
    require_internal_secret,
)
from reelstudio.schemas.balance import Balance, CreditRequest
from reelstudio.schemas.error import ErrorResponse
from reelstudio.schemas.internal import ReconcileRequest, ReconcileResponse
from reelstudio.services.balances import BalanceService
from reelstudio.services.reconciliation import ReconciliationEngine

router = APIRouter(prefix="/internal", tags=["Internal"], dependencies=[Depends(require_internal_secret)])


@router.post("/reconcile", response_model=ReconcileResponse, responses={401: {"model": ErrorResponse}})
def reconcile_active_jobs(
    engine: Annotated[ReconciliationEngine, Depends(get_reconciliation_engine)],
    settings: Annotated[Settings, Depends(get_settings)],
    payload: ReconcileRequest | None = None,
) -> ReconcileResponse:
    limit = payload.limit if payload and payload.limit else settings.reconcile_batch_limit
    report = engine.reconcile_active(limit=limit)
    return ReconcileResponse(
        examined=report.examined,
        transitioned=report.transitioned,
        settled=report.settled,
        lost_races=report.lost_races,
        query_failures=report.query_failures,
        store_failures=report.store_failures,
    )


@router.post("/balances/{userId}/credit", response_model=Balance, responses={401: {"model": ErrorResponse}})
def credit_balance(
    user_id: Annotated[str, Path(alias="userId", min_length=1)],
    payload: CreditRequest,
    service: Annotated[BalanceService, Depends(get_balance_service)],
) -> Balance:
    return service.credit(user_id=user_id, amount=payload.amount, kind=payload.kind, description=payload.description)
