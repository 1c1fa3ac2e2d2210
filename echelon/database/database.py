"""Database connection and session management."""

import logging
import os
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Generator, Optional

from sqlalchemy import create_engine, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from echelon.auth.password import PasswordHasher
from echelon.config.settings import BootstrapSettings, get_settings
from echelon.models.base import Base
from echelon.models.employee import Employee

logger = logging.getLogger(__name__)


@dataclass
class DatabaseConfig:
    """Database configuration settings."""

    host: str = "localhost"
    port: int = 5432
    database: str = "echelon"
    username: str = "postgres"
    password: str = ""
    pool_size: int = 5
    max_overflow: int = 10
    echo: bool = False
    isolation_level: str = "READ COMMITTED"
    url_override: Optional[str] = None

    @classmethod
    def from_env(cls) -> "DatabaseConfig":
        """Create config from environment variables."""
        return cls(
            host=os.getenv("DB_HOST", "localhost"),
            port=int(os.getenv("DB_PORT", "5432")),
            database=os.getenv("DB_NAME", "echelon"),
            username=os.getenv("DB_USER", "postgres"),
            password=os.getenv("DB_PASSWORD", ""),
            pool_size=int(os.getenv("DB_POOL_SIZE", "5")),
            max_overflow=int(os.getenv("DB_MAX_OVERFLOW", "10")),
            echo=os.getenv("DB_ECHO", "false").lower() == "true",
            isolation_level=os.getenv("DB_ISOLATION_LEVEL", "READ COMMITTED"),
            url_override=os.getenv("DATABASE_URL") or None,
        )

    @property
    def url(self) -> str:
        """Generate SQLAlchemy database URL."""
        if self.url_override:
            return self.url_override
        return f"postgresql://{self.username}:{self.password}@{self.host}:{self.port}/{self.database}"


# Module-level engine and session factory (initialized lazily)
_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker[Session]] = None


def get_engine(config: Optional[DatabaseConfig] = None) -> Engine:
    """Get or create the process-wide engine.

    PostgreSQL engines run at READ COMMITTED with pre-ping; manager graph
    reads that guard a write take row locks on top of that.
    """
    global _engine

    if _engine is None:
        if config is None:
            config = DatabaseConfig.from_env()

        if config.url.startswith("sqlite"):
            _engine = create_engine(
                config.url,
                echo=config.echo,
                connect_args={"check_same_thread": False},
            )
        else:
            _engine = create_engine(
                config.url,
                pool_size=config.pool_size,
                max_overflow=config.max_overflow,
                echo=config.echo,
                isolation_level=config.isolation_level,
                pool_pre_ping=True,  # Verify connections before use
            )

    return _engine


def get_session_factory(config: Optional[DatabaseConfig] = None) -> sessionmaker[Session]:
    """Get or create the session factory bound to the engine."""
    global _session_factory

    if _session_factory is None:
        engine = get_engine(config)
        _session_factory = sessionmaker(
            bind=engine,
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )

    return _session_factory


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """
    Transactional session scope.

    Commits when the block completes and rolls back if it raises, so a
    rejected operation never leaves a partial write behind.
    """
    session_factory = get_session_factory()
    session = session_factory()

    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_db() -> Generator[Session, None, None]:
    """
    Dependency that provides a database session.

    Use with FastAPI's Depends(); one transaction per request.
    """
    with get_db_context() as session:
        yield session


def ensure_admin(
    session: Session,
    settings: Optional[BootstrapSettings] = None,
    hasher: Optional[PasswordHasher] = None,
) -> Optional[Employee]:
    """
    Create the first administrator if the directory has none.

    Returns the new employee, or None when an administrator already exists.
    The account must change its password at first login.
    """
    settings = settings or get_settings().bootstrap
    hasher = hasher or PasswordHasher()

    stmt = select(Employee.id).where(Employee.permission_level == "admin").limit(1)
    if session.execute(stmt).first() is not None:
        logger.info("Administrator already exists, skipping bootstrap")
        return None

    admin = Employee(
        employee_number=settings.admin_employee_number,
        first_name=settings.admin_first_name,
        surname=settings.admin_surname,
        email=settings.admin_email.lower(),
        birth_date=date(1990, 1, 1),
        salary=Decimal("100000.00"),
        role="System Administrator",
        permission_level="admin",
        manager_id=None,
        password_hash=hasher.hash(settings.admin_password),
        must_change_password=True,
        is_active=True,
    )
    session.add(admin)
    session.flush()

    logger.info(f"Created administrator {admin.id} ({admin.email})")
    return admin


def init_db(config: Optional[DatabaseConfig] = None) -> None:
    """
    Create all tables and the first administrator.

    Development only; production schemas come from the Alembic migrations.
    """
    engine = get_engine(config)
    Base.metadata.create_all(bind=engine)

    with get_db_context() as session:
        ensure_admin(session)


def dispose_engine() -> None:
    """Dispose of the engine and reset module state."""
    global _engine, _session_factory

    if _engine is not None:
        _engine.dispose()
        _engine = None
        _session_factory = None
