"""Session token service (JWT).

Sign-in itself is handled by the identity provider integration; this
service only issues and verifies the bearer tokens the API accepts.
"""

import os
from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt
from jose.exceptions import ExpiredSignatureError


class AuthenticationError(Exception):
    """Authentication error."""

    pass


class AuthService:
    """Service for issuing and verifying session tokens."""

    # JWT settings
    JWT_ALGORITHM = "HS256"
    JWT_EXPIRATION_HOURS = 24 * 7  # 7 days
    JWT_REFRESH_EXPIRATION_DAYS = 30

    def __init__(self, jwt_secret: str | None = None):
        """Initialize auth service.

        Args:
            jwt_secret: Secret for signing JWTs
        """
        self.jwt_secret = jwt_secret or os.environ.get(
            "JWT_SECRET_KEY", "dev-secret-change-in-prod"
        )

    def create_session_tokens(self, user_id: str) -> dict[str, str]:
        """Create access and refresh tokens for a user.

        Args:
            user_id: User ID

        Returns:
            Dict with access_token and refresh_token
        """
        now = datetime.now(UTC)

        # Access token
        access_payload = {
            "sub": user_id,
            "type": "access",
            "iat": now,
            "exp": now + timedelta(hours=self.JWT_EXPIRATION_HOURS),
        }
        access_token = jwt.encode(
            access_payload, self.jwt_secret, algorithm=self.JWT_ALGORITHM
        )

        # Refresh token
        refresh_payload = {
            "sub": user_id,
            "type": "refresh",
            "iat": now,
            "exp": now + timedelta(days=self.JWT_REFRESH_EXPIRATION_DAYS),
        }
        refresh_token = jwt.encode(
            refresh_payload, self.jwt_secret, algorithm=self.JWT_ALGORITHM
        )

        return {
            "access_token": access_token,
            "refresh_token": refresh_token,
            "token_type": "Bearer",
            "expires_in": self.JWT_EXPIRATION_HOURS * 3600,
        }

    def verify_access_token(self, token: str) -> str:
        """Verify an access token and return the user ID.

        Raises:
            AuthenticationError: If token is invalid
        """
        return self._verify(token, "access")

    def refresh_tokens(self, refresh_token: str) -> dict[str, str]:
        """Exchange a valid refresh token for a new token pair.

        Raises:
            AuthenticationError: If refresh token is invalid
        """
        user_id = self._verify(refresh_token, "refresh")
        return self.create_session_tokens(user_id)

    def _verify(self, token: str, token_type: str) -> str:
        try:
            payload = jwt.decode(
                token,
                self.jwt_secret,
                algorithms=[self.JWT_ALGORITHM],
                options={"verify_exp": True},
            )
        except ExpiredSignatureError:
            raise AuthenticationError("Token has expired")
        except JWTError as e:
            raise AuthenticationError(f"Invalid token: {str(e)}")

        if payload.get("type") != token_type:
            raise AuthenticationError("Invalid token type")

        user_id = payload.get("sub")
        if not user_id:
            raise AuthenticationError("Missing user ID in token")
        return user_id
