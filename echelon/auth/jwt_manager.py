"""
JWT Token Manager

Issues and verifies signed session tokens carrying the actor's identity,
with a fixed validity window.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from uuid import uuid4

import jwt
from jwt.exceptions import (
    DecodeError,
    ExpiredSignatureError,
    InvalidSignatureError,
    InvalidTokenError,
)
from pydantic import BaseModel, ValidationError

from echelon.config.settings import AuthSettings, get_settings

logger = logging.getLogger(__name__)


# =============================================================================
# Models
# =============================================================================

class TokenPayload(BaseModel):
    """JWT token payload."""

    # Standard claims
    sub: str  # Subject (employee ID)
    exp: datetime  # Expiration
    iat: datetime  # Issued at
    iss: Optional[str] = None  # Issuer
    aud: Optional[str] = None  # Audience
    jti: str  # JWT ID (unique identifier)

    # Custom claims
    permission_level: str
    manager_id: Optional[str] = None
    email: Optional[str] = None
    name: Optional[str] = None


class IssuedToken(BaseModel):
    """A signed token and its lifetime."""

    access_token: str
    token_type: str = "Bearer"
    expires_in: int  # Seconds until the token expires
    expires_at: datetime


class TokenValidationResult(BaseModel):
    """Result of token validation."""

    is_valid: bool
    payload: Optional[TokenPayload] = None
    error: Optional[str] = None
    error_code: Optional[str] = None


# =============================================================================
# JWT Manager
# =============================================================================

class JWTManager:
    """
    Session token issuer.

    Tokens are stateless: they are never stored and simply stop verifying
    once their validity window has passed.
    """

    def __init__(self, config: Optional[AuthSettings] = None):
        self.config = config or get_settings().auth

    def issue(self, claims: Dict[str, Any]) -> IssuedToken:
        """
        Sign a token for the given actor claims.

        Args:
            claims: Must contain ``sub`` and ``permission_level``

        Returns:
            IssuedToken with the encoded token and its expiry
        """
        now = datetime.now(timezone.utc)
        expires = now + timedelta(hours=self.config.jwt_expire_hours)

        payload = {
            **claims,
            "iat": now,
            "exp": expires,
            "iss": self.config.jwt_issuer,
            "aud": self.config.jwt_audience,
            "jti": str(uuid4()),
        }

        token = jwt.encode(
            payload,
            self.config.jwt_secret_key,
            algorithm=self.config.jwt_algorithm,
        )

        logger.debug(f"Issued session token for {claims.get('sub')}")

        return IssuedToken(
            access_token=token,
            expires_in=int((expires - now).total_seconds()),
            expires_at=expires,
        )

    def verify(self, token: str) -> TokenValidationResult:
        """
        Check signature, expiry, issuer and audience of a session token.

        Failures are reported in the result rather than raised; callers map
        every failure to the same authentication error.
        """
        try:
            claims = jwt.decode(
                token,
                self.config.jwt_secret_key,
                algorithms=[self.config.jwt_algorithm],
                options={"require": ["exp", "iat", "sub", "jti", "permission_level"]},
                audience=self.config.jwt_audience,
                issuer=self.config.jwt_issuer,
            )
        except ExpiredSignatureError:
            return self._rejected("Token has expired", "token_expired")
        except InvalidSignatureError:
            return self._rejected("Invalid token signature", "invalid_signature")
        except DecodeError:
            return self._rejected("Invalid token format", "invalid_format")
        except InvalidTokenError as e:
            return self._rejected(f"Invalid token: {e}", "invalid_token")

        try:
            payload = TokenPayload.model_validate(claims)
        except ValidationError:
            return self._rejected("Token claims are incomplete", "invalid_claims")

        return TokenValidationResult(is_valid=True, payload=payload)

    @staticmethod
    def _rejected(error: str, error_code: str) -> TokenValidationResult:
        return TokenValidationResult(is_valid=False, error=error, error_code=error_code)


# =============================================================================
# Singleton
# =============================================================================

_jwt_manager: Optional[JWTManager] = None


def get_jwt_manager() -> JWTManager:
    """Get the JWT manager singleton."""
    global _jwt_manager

    if _jwt_manager is None:
        _jwt_manager = JWTManager()

    return _jwt_manager


def reset_jwt_manager() -> None:
    """Drop the cached manager (for testing)."""
    global _jwt_manager
    _jwt_manager = None
