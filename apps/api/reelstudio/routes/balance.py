"""Balance routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from reelstudio.routes.dependencies import get_authenticated_principal, get_balance_service
from reelstudio.schemas.auth import AuthPrincipal
from reelstudio.schemas.balance import Balance, TokenTransactionList
from reelstudio.schemas.error import ErrorResponse
from reelstudio.services.balances import BalanceService

router = APIRouter(tags=["Balance"])


@router.get("/balance", response_model=Balance, responses={401: {"model": ErrorResponse}})
def get_balance(
    principal: Annotated[AuthPrincipal, Depends(get_authenticated_principal)],
    service: Annotated[BalanceService, Depends(get_balance_service)],
) -> Balance:
    return service.get_balance(user_id=principal.user_id)


@router.get("/balance/transactions", response_model=TokenTransactionList, responses={401: {"model": ErrorResponse}})
def list_transactions(
    principal: Annotated[AuthPrincipal, Depends(get_authenticated_principal)],
    service: Annotated[BalanceService, Depends(get_balance_service)],
    limit: Annotated[int, Query(ge=1, le=500)] = 100,
) -> TokenTransactionList:
    return TokenTransactionList(items=service.list_transactions(user_id=principal.user_id, limit=limit))
