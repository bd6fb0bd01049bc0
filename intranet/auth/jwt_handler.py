"""JWT token creation and validation."""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from loguru import logger

from intranet.config import config


class JWTHandler:
    """Handles JWT token creation and validation."""

    def __init__(
        self,
        secret_key: Optional[str] = None,
        algorithm: Optional[str] = None,
        access_token_expire_minutes: Optional[int] = None,
    ):
        self.secret_key = secret_key or config.JWT_SECRET_KEY
        self.algorithm = algorithm or config.JWT_ALGORITHM
        self.access_token_expire_minutes = access_token_expire_minutes or config.JWT_ACCESS_TOKEN_EXPIRE_MINUTES

        if not self.secret_key:
            logger.warning("JWT_SECRET_KEY not configured - authentication will not work")

    def create_access_token(self, user_id: str, email: str, role: str, name: Optional[str] = None) -> str:
        """
        Create a short-lived access token.

        The role is stored under ``app_metadata`` the way Supabase Auth
        stores provider-managed claims.

        Args:
            user_id: The user's unique identifier
            email: The user's email address
            role: Resolved role name ("ADMIN" or "MEMBER")
            name: Display name

        Returns:
            Encoded JWT access token
        """
        now = datetime.now(timezone.utc)
        payload = {
            "sub": user_id,
            "email": email,
            "type": "access",
            "app_metadata": {"role": role},
            "user_metadata": {"name": name} if name else {},
            "exp": now + timedelta(minutes=self.access_token_expire_minutes),
            "iat": now,
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def decode_token(self, token: str) -> Optional[dict]:
        """
        Decode and validate a JWT token.

        Audience is not checked; Supabase tokens carry ``aud=authenticated``
        and locally issued ones carry none.

        Args:
            token: The JWT token to decode

        Returns:
            Decoded payload if valid, None otherwise
        """
        if not self.secret_key:
            return None
        try:
            return jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"verify_aud": False},
            )
        except jwt.ExpiredSignatureError:
            logger.info("Token has expired")
            return None
        except jwt.InvalidTokenError as e:
            logger.info(f"Invalid token: {type(e).__name__}")
            return None

    def get_token_expiry_seconds(self) -> int:
        """Get the access token expiry time in seconds."""
        return self.access_token_expire_minutes * 60
