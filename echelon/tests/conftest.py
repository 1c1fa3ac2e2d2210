"""Shared fixtures: in-memory database, seeded organization and actors."""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from echelon.auth.jwt_manager import reset_jwt_manager
from echelon.auth.password import PasswordHasher, default_password
from echelon.config.settings import reset_settings
from echelon.models import Base, Employee
from echelon.utils.auth import Actor


# =============================================================================
# Settings
# =============================================================================

@pytest.fixture(autouse=True)
def fast_settings(monkeypatch):
    """Cheap bcrypt rounds and a fixed signing key for every test."""
    monkeypatch.setenv("BCRYPT_ROUNDS", "4")
    monkeypatch.setenv("JWT_SECRET_KEY", "test-secret-key")
    reset_settings()
    reset_jwt_manager()
    yield
    reset_settings()
    reset_jwt_manager()


@pytest.fixture
def hasher():
    """Password hasher with minimal work factor."""
    return PasswordHasher(rounds=4)


# =============================================================================
# Database
# =============================================================================

@pytest.fixture
def engine():
    """In-memory SQLite engine shared across threads."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    # The in-memory database goes away with its only connection
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


# =============================================================================
# Organization
# =============================================================================

@pytest.fixture
def make_employee(db_session, hasher):
    """Factory inserting a committed employee with the default password."""
    counter = {"n": 0}

    def _make(
        first_name: str,
        surname: str = "Tester",
        permission_level: str = "employee",
        manager: Employee = None,
        role: str = "Software Engineer",
        salary: str = "50000.00",
        is_active: bool = True,
        must_change_password: bool = False,
    ) -> Employee:
        counter["n"] += 1
        number = f"EMP{counter['n']:03d}"
        employee = Employee(
            employee_number=number,
            first_name=first_name,
            surname=surname,
            email=f"{first_name.lower()}.{surname.lower()}@example.com",
            birth_date=date(1990, 1, 1),
            role=role,
            salary=Decimal(salary),
            permission_level=permission_level,
            manager_id=manager.id if manager else None,
            password_hash=hasher.hash(default_password(first_name, number)),
            must_change_password=must_change_password,
            is_active=is_active,
        )
        db_session.add(employee)
        db_session.commit()
        return employee

    return _make


@pytest.fixture
def org(make_employee):
    """
    A small organization:

        Ada (admin)
        ├── Hana (hr)
        ├── Mona (manager)
        │   ├── Eve (employee)
        │   └── Finn (employee)
        └── Max (manager)
            └── Gus (employee)
        Lou (employee, no manager)
    """
    ada = make_employee("Ada", "Admin", permission_level="admin", role="Chief Executive Officer",
                        salary="200000.00")
    hana = make_employee("Hana", "Human", permission_level="hr", manager=ada, role="HR Manager",
                         salary="90000.00")
    mona = make_employee("Mona", "Manager", permission_level="manager", manager=ada,
                         role="Engineering Manager", salary="120000.00")
    max_ = make_employee("Max", "Manager", permission_level="manager", manager=ada,
                         role="Product Manager", salary="110000.00")
    eve = make_employee("Eve", "Engineer", manager=mona)
    finn = make_employee("Finn", "Engineer", manager=mona, role="Senior Software Engineer",
                         salary="75000.00")
    gus = make_employee("Gus", "Seller", manager=max_, role="Sales Representative")
    lou = make_employee("Lou", "Loner", role="Accountant")

    return {
        "ada": ada,
        "hana": hana,
        "mona": mona,
        "max": max_,
        "eve": eve,
        "finn": finn,
        "gus": gus,
        "lou": lou,
    }


@pytest.fixture
def actors(org):
    """Actor snapshots for every seeded employee."""
    return {name: Actor.from_employee(employee) for name, employee in org.items()}
