from __future__ import annotations

from functools import lru_cache
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from supabase import AsyncClient

from intranet.config import config
from intranet.errors import Unauthenticated, Unauthorized

from .identity import authorize, require_admin
from .jwt_handler import JWTHandler
from .schemas import Session

# Bearer Token Scheme mainly for Swagger UI; missing tokens are reported by us
oauth2_scheme = HTTPBearer(auto_error=False)


def get_supabase_client(request: Request) -> AsyncClient:
    """
    Dependency to get the shared Supabase client (SERVICE_ROLE_KEY).
    Authorization is enforced by the application, not by RLS.
    """
    if not hasattr(request.app.state, "supabase"):
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Supabase client not initialized"
        )
    return request.app.state.supabase


@lru_cache
def get_jwt_handler() -> JWTHandler:
    return JWTHandler()


def get_current_session(
    token: Optional[HTTPAuthorizationCredentials] = Depends(oauth2_scheme),
    jwt_handler: JWTHandler = Depends(get_jwt_handler),
) -> Session:
    """
    Verify the bearer token and resolve the caller's session.
    Returns the Session if valid, raises 401 otherwise.
    """
    try:
        return authorize(
            token.credentials if token else None,
            jwt_handler,
            config.all_admin_emails(),
        )
    except Unauthenticated as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.message,
            headers={"WWW-Authenticate": "Bearer"},
        )


def require_admin_session(session: Session = Depends(get_current_session)) -> Session:
    """Reject non-admin callers with 403 before the request body is handled."""
    try:
        require_admin(session.role)
    except Unauthorized as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.message)
    return session
