"""Authentication module."""

from echelon.auth.jwt_manager import (
    IssuedToken,
    JWTManager,
    TokenPayload,
    TokenValidationResult,
    get_jwt_manager,
    reset_jwt_manager,
)

from echelon.auth.password import PasswordHasher, default_password

__all__ = [
    # JWT
    "IssuedToken",
    "JWTManager",
    "TokenPayload",
    "TokenValidationResult",
    "get_jwt_manager",
    "reset_jwt_manager",
    # Passwords
    "PasswordHasher",
    "default_password",
]
