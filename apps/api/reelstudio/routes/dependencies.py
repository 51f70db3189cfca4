"""Dependency wiring for routes."""

from __future__ import annotations

import logging
from secrets import compare_digest
from typing import Annotated
from uuid import uuid4

from fastapi import Depends, Request, Security
from fastapi.security import APIKeyHeader, HTTPAuthorizationCredentials, HTTPBearer

from reelstudio.adapters.auth import (
    AuthVerificationError,
    FirebaseTokenVerifier,
    MockTokenVerifier,
    TokenVerifier,
)
from reelstudio.adapters.provider import VideoProvider
from reelstudio.core.config import Settings, get_settings
from reelstudio.core.logging_config import safe_log_identifier
from reelstudio.errors import ApiError
from reelstudio.repositories.database import Database
from reelstudio.schemas.auth import AuthPrincipal
from reelstudio.services.balances import BalanceService
from reelstudio.services.jobs import JobService
from reelstudio.services.reconciliation import ReconciliationEngine
from reelstudio.services.works import WorkService

bearer_scheme = HTTPBearer(auto_error=False, scheme_name="bearerAuth")
internal_secret_scheme = APIKeyHeader(
    name="X-Internal-Secret",
    auto_error=False,
    scheme_name="internalSecret",
)
logger = logging.getLogger(__name__)


def _auth_error(message: str) -> ApiError:
    return ApiError(status_code=401, code="UNAUTHORIZED", message=message)


def _request_correlation_id(request: Request) -> str:
    existing = getattr(request.state, "correlation_id", None)
    if isinstance(existing, str) and existing:
        return existing

    correlation_id = request.headers.get("X-Correlation-Id")
    if correlation_id:
        request.state.correlation_id = correlation_id
        return correlation_id

    generated = f"req-{uuid4()}"
    request.state.correlation_id = generated
    return generated


def get_token_verifier(settings: Annotated[Settings, Depends(get_settings)]) -> TokenVerifier:
    """Resolve provider adapter from configuration."""
    if settings.auth_provider == "firebase":
        return FirebaseTokenVerifier(
            project_id=settings.firebase_project_id,
            audience=settings.firebase_audience,
        )
    return MockTokenVerifier()


def get_authenticated_principal(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Security(bearer_scheme)],
    verifier: Annotated[TokenVerifier, Depends(get_token_verifier)],
) -> AuthPrincipal:
    """Validate bearer token and attach normalized principal to request context."""
    correlation_id = _request_correlation_id(request)
    safe_correlation_id = safe_log_identifier(correlation_id, prefix="cid")
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        logger.warning(
            "auth.rejected correlation_id=%s method=%s path=%s reason=invalid_or_missing_bearer",
            safe_correlation_id,
            request.method,
            request.url.path,
        )
        raise _auth_error("Invalid or missing bearer token")

    try:
        principal = verifier.verify_token(credentials.credentials)
    except AuthVerificationError as exc:
        logger.warning(
            "auth.rejected correlation_id=%s method=%s path=%s reason=token_verification_failed",
            safe_correlation_id,
            request.method,
            request.url.path,
        )
        raise _auth_error(str(exc) or "Invalid bearer token") from exc

    logger.info(
        "auth.accepted correlation_id=%s method=%s path=%s principal_id=%s role=%s",
        safe_correlation_id,
        request.method,
        request.url.path,
        safe_log_identifier(principal.user_id, prefix="pid"),
        principal.role,
    )
    request.state.auth_principal = principal
    return principal


def require_internal_secret(
    request: Request,
    internal_secret: Annotated[str | None, Security(internal_secret_scheme)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> None:
    """Validate the shared secret for internal endpoints."""
    if internal_secret is None or not compare_digest(internal_secret, settings.internal_secret):
        logger.warning(
            "internal.auth_rejected correlation_id=%s method=%s path=%s reason=invalid_internal_secret",
            safe_log_identifier(_request_correlation_id(request), prefix="cid"),
            request.method,
            request.url.path,
        )
        raise _auth_error("Invalid internal authentication")


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_provider(request: Request) -> VideoProvider:
    return request.app.state.provider


def get_reconciliation_engine(
    database: Annotated[Database, Depends(get_database)],
    provider: Annotated[VideoProvider, Depends(get_provider)],
) -> ReconciliationEngine:
    return ReconciliationEngine(database, provider)


def get_job_service(
    database: Annotated[Database, Depends(get_database)],
    provider: Annotated[VideoProvider, Depends(get_provider)],
    engine: Annotated[ReconciliationEngine, Depends(get_reconciliation_engine)],
) -> JobService:
    return JobService(database, provider, engine)


def get_work_service(database: Annotated[Database, Depends(get_database)]) -> WorkService:
    return WorkService(database)


def get_balance_service(database: Annotated[Database, Depends(get_database)]) -> BalanceService:
    return BalanceService(database)
