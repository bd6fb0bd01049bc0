"""Identity gate: turns token claims into a role and guards mutations."""

from typing import Iterable, Optional

from loguru import logger

from intranet.errors import Unauthenticated, Unauthorized

from .jwt_handler import JWTHandler
from .schemas import Role, Session


def resolve_role(claims: dict, admin_emails: Iterable[str] = ()) -> Role:
    """
    Resolve the caller's role from token claims.

    ADMIN when ``app_metadata.role`` (or a top-level ``role`` other than
    Supabase's generic "authenticated") says so, or when the email is in
    the configured admin list.

    Args:
        claims: Decoded JWT payload
        admin_emails: Lower-cased admin email addresses

    Returns:
        Role.ADMIN or Role.MEMBER
    """
    app_metadata = claims.get("app_metadata") or {}
    candidates = [app_metadata.get("role"), claims.get("role")]
    if any(isinstance(c, str) and c.upper() == Role.ADMIN.value for c in candidates):
        return Role.ADMIN

    email = (claims.get("email") or "").strip().lower()
    if email and email in {e.lower() for e in admin_emails}:
        return Role.ADMIN
    return Role.MEMBER


def authorize(
    token: Optional[str],
    jwt_handler: JWTHandler,
    admin_emails: Iterable[str] = (),
) -> Session:
    """
    Resolve a bearer token into a Session.

    Raises:
        Unauthenticated: If the token is missing, invalid, expired or has no subject
    """
    if not token:
        raise Unauthenticated("Not authenticated")

    claims = jwt_handler.decode_token(token)
    if not claims or not claims.get("sub"):
        raise Unauthenticated("Invalid authentication credentials")

    user_metadata = claims.get("user_metadata") or {}
    return Session(
        user_id=str(claims["sub"]),
        email=claims.get("email"),
        name=user_metadata.get("name"),
        role=resolve_role(claims, admin_emails),
    )


def is_admin(session: Optional[Session]) -> bool:
    return session is not None and session.role is Role.ADMIN


def require_admin(role: Optional[Role]) -> None:
    """
    Raises:
        Unauthorized: If the role is not ADMIN
    """
    if role is not Role.ADMIN:
        logger.warning(f"Rejected mutation for role {role.value if role else None}")
        raise Unauthorized("Unauthorized")


__all__ = ["resolve_role", "authorize", "is_admin", "require_admin"]
