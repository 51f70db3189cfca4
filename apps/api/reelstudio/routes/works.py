"""Work routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, Path, status

from reelstudio.routes.dependencies import get_authenticated_principal, get_work_service
from reelstudio.schemas.auth import AuthPrincipal
from reelstudio.schemas.error import ErrorResponse, NoLeakNotFoundError
from reelstudio.schemas.work import CreateWorkRequest, Work, WorkList
from reelstudio.services.works import WorkService

router = APIRouter(tags=["Works"])


@router.post(
    "/works",
    response_model=Work,
    status_code=status.HTTP_201_CREATED,
    responses={401: {"model": ErrorResponse}},
)
def create_work(
    payload: CreateWorkRequest,
    principal: Annotated[AuthPrincipal, Depends(get_authenticated_principal)],
    service: Annotated[WorkService, Depends(get_work_service)],
) -> Work:
    return service.create_work(owner_id=principal.user_id, title=payload.title)


@router.get("/works", response_model=WorkList, responses={401: {"model": ErrorResponse}})
def list_works(
    principal: Annotated[AuthPrincipal, Depends(get_authenticated_principal)],
    service: Annotated[WorkService, Depends(get_work_service)],
) -> WorkList:
    return WorkList(items=service.list_works(owner_id=principal.user_id))


@router.get(
    "/works/{workId}",
    response_model=Work,
    responses={401: {"model": ErrorResponse}, 404: {"model": NoLeakNotFoundError}},
)
def get_work(
    work_id: Annotated[str, Path(alias="workId")],
    principal: Annotated[AuthPrincipal, Depends(get_authenticated_principal)],
    service: Annotated[WorkService, Depends(get_work_service)],
) -> Work:
    return service.get_work(owner_id=principal.user_id, work_id=work_id)
