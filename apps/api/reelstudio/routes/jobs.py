"""Job routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query, status

from reelstudio.routes.dependencies import get_authenticated_principal, get_job_service
from reelstudio.schemas.auth import AuthPrincipal
from reelstudio.schemas.error import (
    ErrorResponse,
    FsmTransitionError,
    InsufficientFundsError,
    NoLeakNotFoundError,
    ReindexConflictError,
    UpstreamProviderError,
)
from reelstudio.schemas.job import (
    BatchCreateJobsRequest,
    BatchCreateJobsResponse,
    CreateJobRequest,
    DeleteJobResponse,
    Job,
    JobList,
    ReorderRequest,
    ResetScopeResponse,
    UpdateJobFieldsRequest,
)
from reelstudio.services.jobs import JobService

router = APIRouter(tags=["Jobs"])


@router.post(
    "/works/{workId}/jobs",
    response_model=Job,
    status_code=status.HTTP_201_CREATED,
    responses={
        401: {"model": ErrorResponse},
        402: {"model": InsufficientFundsError},
        404: {"model": NoLeakNotFoundError},
        422: {"model": ErrorResponse},
        502: {"model": UpstreamProviderError},
    },
)
def create_job(
    work_id: Annotated[str, Path(alias="workId")],
    payload: CreateJobRequest,
    principal: Annotated[AuthPrincipal, Depends(get_authenticated_principal)],
    service: Annotated[JobService, Depends(get_job_service)],
) -> Job:
    return service.create_job(owner_id=principal.user_id, work_id=work_id, payload=payload)


@router.post(
    "/works/{workId}/jobs/batch",
    response_model=BatchCreateJobsResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        401: {"model": ErrorResponse},
        402: {"model": InsufficientFundsError},
        404: {"model": NoLeakNotFoundError},
        422: {"model": ErrorResponse},
    },
)
def create_job_batch(
    work_id: Annotated[str, Path(alias="workId")],
    payload: BatchCreateJobsRequest,
    principal: Annotated[AuthPrincipal, Depends(get_authenticated_principal)],
    service: Annotated[JobService, Depends(get_job_service)],
) -> BatchCreateJobsResponse:
    return service.create_batch(owner_id=principal.user_id, work_id=work_id, payload=payload)


@router.get(
    "/works/{workId}/jobs",
    response_model=JobList,
    responses={401: {"model": ErrorResponse}, 404: {"model": NoLeakNotFoundError}},
)
def list_jobs(
    work_id: Annotated[str, Path(alias="workId")],
    principal: Annotated[AuthPrincipal, Depends(get_authenticated_principal)],
    service: Annotated[JobService, Depends(get_job_service)],
    sub_unit: Annotated[int | None, Query(ge=1)] = None,
) -> JobList:
    return service.list_jobs(owner_id=principal.user_id, work_id=work_id, sub_unit=sub_unit)


@router.delete(
    "/works/{workId}/jobs",
    response_model=ResetScopeResponse,
    responses={
        401: {"model": ErrorResponse},
        404: {"model": NoLeakNotFoundError},
        409: {"model": ErrorResponse},
    },
)
def reset_scope(
    work_id: Annotated[str, Path(alias="workId")],
    sub_unit: Annotated[int, Query(ge=1)],
    principal: Annotated[AuthPrincipal, Depends(get_authenticated_principal)],
    service: Annotated[JobService, Depends(get_job_service)],
) -> ResetScopeResponse:
    return service.reset_scope(owner_id=principal.user_id, work_id=work_id, sub_unit=sub_unit)


@router.post(
    "/works/{workId}/jobs/reorder",
    response_model=JobList,
    responses={
        401: {"model": ErrorResponse},
        404: {"model": NoLeakNotFoundError},
        409: {"model": ReindexConflictError},
    },
)
def reorder_jobs(
    work_id: Annotated[str, Path(alias="workId")],
    payload: ReorderRequest,
    principal: Annotated[AuthPrincipal, Depends(get_authenticated_principal)],
    service: Annotated[JobService, Depends(get_job_service)],
) -> JobList:
    return service.reorder_jobs(owner_id=principal.user_id, work_id=work_id, payload=payload)


@router.get(
    "/jobs/{jobId}",
    response_model=Job,
    responses={401: {"model": ErrorResponse}, 404: {"model": NoLeakNotFoundError}},
)
def get_job(
    job_id: Annotated[str, Path(alias="jobId")],
    principal: Annotated[AuthPrincipal, Depends(get_authenticated_principal)],
    service: Annotated[JobService, Depends(get_job_service)],
) -> Job:
    return service.get_job(owner_id=principal.user_id, job_id=job_id)


@router.patch(
    "/jobs/{jobId}",
    response_model=Job,
    responses={
        401: {"model": ErrorResponse},
        404: {"model": NoLeakNotFoundError},
        409: {"model": ErrorResponse},
    },
)
def update_job_fields(
    job_id: Annotated[str, Path(alias="jobId")],
    payload: UpdateJobFieldsRequest,
    principal: Annotated[AuthPrincipal, Depends(get_authenticated_principal)],
    service: Annotated[JobService, Depends(get_job_service)],
) -> Job:
    return service.update_job_fields(owner_id=principal.user_id, job_id=job_id, payload=payload)


@router.post(
    "/jobs/{jobId}/submit",
    response_model=Job,
    status_code=status.HTTP_202_ACCEPTED,
    responses={
        401: {"model": ErrorResponse},
        402: {"model": InsufficientFundsError},
        404: {"model": NoLeakNotFoundError},
        409: {"model": FsmTransitionError},
        422: {"model": ErrorResponse},
        502: {"model": UpstreamProviderError},
    },
)
def submit_job(
    job_id: Annotated[str, Path(alias="jobId")],
    principal: Annotated[AuthPrincipal, Depends(get_authenticated_principal)],
    service: Annotated[JobService, Depends(get_job_service)],
) -> Job:
    return service.submit_job(owner_id=principal.user_id, job_id=job_id)


@router.delete(
    "/jobs/{jobId}",
    response_model=DeleteJobResponse,
    responses={
        401: {"model": ErrorResponse},
        404: {"model": NoLeakNotFoundError},
        409: {"model": ErrorResponse},
    },
)
def delete_job(
    job_id: Annotated[str, Path(alias="jobId")],
    principal: Annotated[AuthPrincipal, Depends(get_authenticated_principal)],
    service: Annotated[JobService, Depends(get_job_service)],
) -> DeleteJobResponse:
    return service.delete_job(owner_id=principal.user_id, job_id=job_id)
