"""Authentication request/response schemas."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class Role(str, Enum):
    """Caller roles. Only ADMIN may mutate the taxonomy."""

    ADMIN = "ADMIN"
    MEMBER = "MEMBER"


class Session(BaseModel):
    """Resolved caller context, passed explicitly into every mutation."""

    user_id: str
    email: Optional[str] = None
    name: Optional[str] = None
    role: Role = Role.MEMBER


# =============================================================================
# Request Models
# =============================================================================


class DevLoginRequest(BaseModel):
    """Development-only login request."""

    email: EmailStr
    name: Optional[str] = Field(None, max_length=200)


# =============================================================================
# Response Models
# =============================================================================


class TokenResponse(BaseModel):
    """Authentication token response."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds until access token expires
    role: Role
