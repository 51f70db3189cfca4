"""Firebase Auth token verifier adapter."""

from __future__ import annotations

import firebase_admin
from firebase_admin import auth as firebase_auth
from firebase_admin import exceptions as firebase_exceptions

from reelstudio.adapters.auth.base import AuthVerificationError, TokenVerifier
from reelstudio.schemas.auth import AuthPrincipal


class FirebaseTokenVerifier(TokenVerifier):
    """Verifies Firebase ID tokens (signature, expiry, revocation) and normalizes principal data."""

    def __init__(self, project_id: str | None, audience: str | None) -> None:
        self._project_id = project_id
        self._audience = audience

    def _app(self) -> firebase_admin.App:
        try:
            return firebase_admin.get_app()
        except ValueError:
            options = {"projectId": self._project_id} if self._project_id else None
            return firebase_admin.initialize_app(options=options)

    def verify_token(self, token: str) -> AuthPrincipal:
        try:
            decoded = firebase_auth.verify_id_token(token, app=self._app(), check_revoked=True)
        except (ValueError, firebase_exceptions.FirebaseError) as exc:
            raise AuthVerificationError("Invalid bearer token") from exc

        if self._audience and decoded.get("aud") != self._audience:
            raise AuthVerificationError("Invalid bearer token audience")

        if self._project_id:
            issuer = str(decoded.get("iss", ""))
            audience = str(decoded.get("aud", ""))
            if self._project_id not in issuer and audience != self._project_id:
                raise AuthVerificationError("Invalid bearer token issuer")

        user_id = str(decoded.get("uid") or decoded.get("sub") or "").strip()
        role = str(decoded.get("role") or "creator").strip()
        if not user_id:
            raise AuthVerificationError("Bearer token missing user identity")

        return AuthPrincipal(user_id=user_id, role=role)


__all__ = ["FirebaseTokenVerifier"]
