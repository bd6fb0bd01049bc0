"""Authentication API routes."""

from fastapi import APIRouter, Depends, HTTPException, status
from loguru import logger

from intranet.config import config

from .dependencies import get_current_session, get_jwt_handler
from .identity import resolve_role
from .jwt_handler import JWTHandler
from .schemas import DevLoginRequest, Session, TokenResponse

router = APIRouter(prefix="/v1/auth", tags=["auth"])


@router.post("/dev-login", response_model=TokenResponse)
async def dev_login(
    request_body: DevLoginRequest,
    jwt_handler: JWTHandler = Depends(get_jwt_handler),
) -> TokenResponse:
    """
    Development-only login without the identity provider.

    Enabled when DEV_AUTH_ENABLED=true outside production. The role comes
    from ADMIN_EMAILS / DEV_ADMIN_EMAILS.
    """
    if not config.dev_auth_active:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")

    email = request_body.email.lower()
    name = request_body.name or email.split("@")[0]
    role = resolve_role({"email": email}, config.all_admin_emails())

    logger.warning(f"Development login issued for {email} as {role.value}")
    return TokenResponse(
        access_token=jwt_handler.create_access_token(email, email, role.value, name),
        expires_in=jwt_handler.get_token_expiry_seconds(),
        role=role,
    )


@router.get("/me", response_model=Session)
async def me(session: Session = Depends(get_current_session)) -> Session:
    """Return the caller's resolved session."""
    return session
