"""Authentication provider interfaces."""

from abc import ABC, abstractmethod

from reelstudio.schemas.auth import AuthPrincipal


class AuthVerificationError(Exception):
    """Raised when a bearer token is malformed, unsigned or has no user identity."""


class TokenVerifier(ABC):
    """Verifies bearer tokens issued by whichever identity provider fronts the service."""

    @abstractmethod
    def verify_token(self, token: str) -> AuthPrincipal:
        """Verify token and return normalized principal."""


__all__ = ["AuthVerificationError", "TokenVerifier"]
