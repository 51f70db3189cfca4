"""Authentication schemas."""

from pydantic import BaseModel, Field


class AuthPrincipal(BaseModel):
    """Normalized authenticated principal handed to business services."""

    user_id: str = Field(min_length=1)
    role: str = Field(default="creator", min_length=1)
