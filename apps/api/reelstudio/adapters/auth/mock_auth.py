"""Mock auth verifier for local development and tests."""

from reelstudio.adapters.auth.base import AuthVerificationError, TokenVerifier
from reelstudio.schemas.auth import AuthPrincipal


class MockTokenVerifier(TokenVerifier):
    """Accepts unsigned test tokens of the form ``test:<user_id>`` or ``test:<user_id>:<role>``."""

    def verify_token(self, token: str) -> AuthPrincipal:
        scheme, _, rest = token.partition(":")
        if scheme != "test" or not rest:
            raise AuthVerificationError("Invalid bearer token")

        user_id, _, role = rest.partition(":")
        user_id = user_id.strip()
        if not user_id:
            raise AuthVerificationError("Bearer token missing user identity")

        return AuthPrincipal(user_id=user_id, role=role.strip() or "creator")


__all__ = ["MockTokenVerifier"]
