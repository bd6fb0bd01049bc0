"""Authentication module for the intranet service."""

from .dependencies import (
    get_current_session,
    get_jwt_handler,
    get_supabase_client,
    require_admin_session,
)
from .identity import authorize, is_admin, require_admin, resolve_role
from .jwt_handler import JWTHandler
from .routes import router as auth_router
from .schemas import DevLoginRequest, Role, Session, TokenResponse

__all__ = [
    # Router
    "auth_router",
    # Schemas
    "Role",
    "Session",
    "DevLoginRequest",
    "TokenResponse",
    # Core
    "JWTHandler",
    "authorize",
    "resolve_role",
    "is_admin",
    "require_admin",
    # Dependencies
    "get_supabase_client",
    "get_jwt_handler",
    "get_current_session",
    "require_admin_session",
]
