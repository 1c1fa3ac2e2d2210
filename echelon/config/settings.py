"""Application configuration settings."""

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List, Optional


@dataclass
class AuthSettings:
    """Token and password configuration."""

    # Signing key for session tokens
    jwt_secret_key: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"

    # Sessions are valid for 24 hours
    jwt_expire_hours: int = 24

    jwt_issuer: str = "echelon-auth"
    jwt_audience: str = "echelon-api"

    # Password hashing and policy
    bcrypt_rounds: int = 12
    password_min_length: int = 6


@dataclass
class SearchSettings:
    """Directory listing configuration."""

    default_sort_field: str = "first_name"
    default_sort_order: str = "asc"

    # Fields the directory can be sorted by
    sort_fields: List[str] = field(default_factory=lambda: [
        "first_name",
        "surname",
        "employee_number",
        "email",
        "role",
        "permission_level",
        "created_at",
    ])

    # Number of recently created employees reported in statistics
    recent_employees_limit: int = 5


@dataclass
class BootstrapSettings:
    """First administrator account created on an empty directory."""

    # Create tables and the administrator at startup (development only)
    auto_init: bool = False

    admin_employee_number: str = "ADMIN001"
    admin_first_name: str = "System"
    admin_surname: str = "Administrator"
    admin_email: str = "admin@echelon.com"
    admin_password: str = "Admin123!"


@dataclass
class Settings:
    """Main application settings."""

    # Application info
    app_name: str = "Echelon API"
    app_version: str = "1.0.0"
    debug: bool = False

    auth: AuthSettings = field(default_factory=AuthSettings)

    search: SearchSettings = field(default_factory=SearchSettings)

    bootstrap: BootstrapSettings = field(default_factory=BootstrapSettings)

    @classmethod
    def from_env(cls) -> "Settings":
        """Create settings from environment variables."""
        return cls(
            app_name=os.getenv("APP_NAME", "Echelon API"),
            app_version=os.getenv("APP_VERSION", "1.0.0"),
            debug=os.getenv("DEBUG", "false").lower() == "true",
            auth=AuthSettings(
                jwt_secret_key=os.getenv("JWT_SECRET_KEY", "change-me-in-production"),
                jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
                jwt_expire_hours=int(os.getenv("JWT_EXPIRE_HOURS", "24")),
                jwt_issuer=os.getenv("JWT_ISSUER", "echelon-auth"),
                jwt_audience=os.getenv("JWT_AUDIENCE", "echelon-api"),
                bcrypt_rounds=int(os.getenv("BCRYPT_ROUNDS", "12")),
                password_min_length=int(os.getenv("PASSWORD_MIN_LENGTH", "6")),
            ),
            bootstrap=BootstrapSettings(
                auto_init=os.getenv("DB_AUTO_INIT", "false").lower() == "true",
                admin_email=os.getenv("ADMIN_EMAIL", "admin@echelon.com"),
                admin_password=os.getenv("ADMIN_PASSWORD", "Admin123!"),
            ),
        )


# Singleton settings instance
_settings: Optional[Settings] = None


@lru_cache()
def get_settings() -> Settings:
    """Get application settings (cached)."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def reset_settings() -> None:
    """Reset settings (for testing)."""
    global _settings
    _settings = None
    get_settings.cache_clear()
