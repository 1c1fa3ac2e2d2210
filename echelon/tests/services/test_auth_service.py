"""Tests for authentication and password lifecycle."""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from echelon.auth.jwt_manager import JWTManager
from echelon.config.settings import AuthSettings
from echelon.services.auth_service import AuthService
from echelon.utils.auth import PermissionLevel
from echelon.utils.errors import (
    AuthenticationError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)


@pytest.fixture
def auth_config():
    return AuthSettings(jwt_secret_key="unit-test-key", bcrypt_rounds=4)


@pytest.fixture
def auth_service(db_session, hasher, auth_config):
    return AuthService(db_session, hasher=hasher, jwt_manager=JWTManager(auth_config))


class TestAuthenticate:
    """Test cases for login."""

    def test_login_with_default_password(self, auth_service, org):
        """Seeded accounts log in with first name plus employee number."""
        eve = org["eve"]

        session = auth_service.authenticate(eve.email, f"Eve{eve.employee_number}")

        assert session.actor.id == eve.id
        assert session.actor.permission_level == PermissionLevel.EMPLOYEE
        assert session.token.expires_in == 24 * 3600

    def test_login_email_is_case_insensitive(self, auth_service, org):
        """Email lookup ignores case."""
        eve = org["eve"]

        session = auth_service.authenticate(eve.email.upper(), f"Eve{eve.employee_number}")

        assert session.employee.id == eve.id

    def test_wrong_password_and_unknown_account_look_the_same(self, auth_service, org):
        """Failures do not reveal whether the account exists."""
        with pytest.raises(AuthenticationError) as wrong_password:
            auth_service.authenticate(org["eve"].email, "nope")
        with pytest.raises(AuthenticationError) as unknown:
            auth_service.authenticate("nobody@example.com", "nope")

        assert wrong_password.value.message == unknown.value.message

    def test_inactive_account_cannot_login(self, auth_service, make_employee):
        """Deactivated accounts are rejected."""
        gone = make_employee("Gone", "Away", is_active=False)

        with pytest.raises(AuthenticationError):
            auth_service.authenticate(gone.email, f"Gone{gone.employee_number}")


class TestTokens:
    """Test cases for resolving tokens into actors."""

    def test_token_round_trip(self, auth_service, org):
        """A freshly issued token resolves to the same actor."""
        eve = org["eve"]
        session = auth_service.authenticate(eve.email, f"Eve{eve.employee_number}")

        actor = auth_service.get_actor_from_token(session.token.access_token)

        assert actor.id == eve.id
        assert actor.manager_id == org["mona"].id

    def test_actor_reflects_current_record(self, auth_service, org, db_session):
        """Level changes apply without a new login."""
        eve = org["eve"]
        session = auth_service.authenticate(eve.email, f"Eve{eve.employee_number}")

        eve.permission_level = "manager"
        db_session.commit()

        actor = auth_service.get_actor_from_token(session.token.access_token)
        assert actor.permission_level == PermissionLevel.MANAGER

    def test_deactivated_after_login_is_rejected(self, auth_service, org, db_session):
        """Tokens of deactivated accounts stop working."""
        eve = org["eve"]
        session = auth_service.authenticate(eve.email, f"Eve{eve.employee_number}")

        eve.is_active = False
        db_session.commit()

        with pytest.raises(AuthenticationError):
            auth_service.get_actor_from_token(session.token.access_token)

    def test_expired_token_rejected(self, auth_service, auth_config, org):
        """Tokens past their validity window are rejected."""
        past = datetime.now(timezone.utc) - timedelta(hours=25)
        token = jwt.encode(
            {
                "sub": org["eve"].id,
                "permission_level": "employee",
                "iat": past,
                "exp": past + timedelta(hours=24),
                "iss": auth_config.jwt_issuer,
                "aud": auth_config.jwt_audience,
                "jti": "expired",
            },
            auth_config.jwt_secret_key,
            algorithm=auth_config.jwt_algorithm,
        )

        with pytest.raises(AuthenticationError):
            auth_service.get_actor_from_token(token)

    def test_garbage_token_rejected(self, auth_service):
        """Malformed tokens are rejected."""
        with pytest.raises(AuthenticationError):
            auth_service.get_actor_from_token("not-a-token")

    def test_token_signed_with_other_key_rejected(self, auth_service, org):
        """Tokens from another issuer key are rejected."""
        foreign = JWTManager(AuthSettings(jwt_secret_key="someone-else"))
        token = foreign.issue({"sub": org["eve"].id, "permission_level": "admin"})

        with pytest.raises(AuthenticationError):
            auth_service.get_actor_from_token(token.access_token)


class TestChangePassword:
    """Test cases for changing one's own password."""

    def test_change_password(self, auth_service, actors, org, hasher):
        """A valid change replaces the hash and clears the flag."""
        eve = org["eve"]
        eve.must_change_password = True

        auth_service.change_password(actors["eve"], f"Eve{eve.employee_number}", "brand-new-pass")

        assert hasher.verify("brand-new-pass", eve.password_hash)
        assert eve.must_change_password is False

    def test_wrong_current_password(self, auth_service, actors):
        """The current password must match."""
        with pytest.raises(ValidationError) as exc_info:
            auth_service.change_password(actors["eve"], "wrong", "brand-new-pass")

        assert exc_info.value.field_errors[0].field == "current_password"

    def test_policy_violations(self, auth_service, actors, org):
        """New passwords must be long enough and different."""
        current = f"Eve{org['eve'].employee_number}"

        with pytest.raises(ValidationError) as too_short:
            auth_service.change_password(actors["eve"], current, "abc")
        with pytest.raises(ValidationError) as same:
            auth_service.change_password(actors["eve"], current, current)

        assert too_short.value.field_errors[0].field == "new_password"
        assert same.value.field_errors[0].field == "new_password"

    @pytest.mark.parametrize("new_password", ["a" * 100, "\u00e9" * 40])
    def test_new_password_over_bcrypt_limit(self, auth_service, actors, org, new_password):
        """Passwords longer than 72 bytes are a validation error, not a crash."""
        current = f"Eve{org['eve'].employee_number}"

        with pytest.raises(ValidationError) as exc_info:
            auth_service.change_password(actors["eve"], current, new_password)

        assert exc_info.value.field_errors[0].field == "new_password"
        assert "72 bytes" in exc_info.value.field_errors[0].message


class TestResetPassword:
    """Test cases for administrative password resets."""

    def test_admin_resets_to_default(self, auth_service, actors, org, hasher):
        """The reset returns the default credential and forces a change."""
        gus = org["gus"]
        gus.password_hash = hasher.hash("something-else")
        gus.must_change_password = False

        new_password = auth_service.reset_password(actors["ada"], gus.id)

        assert new_password == f"Gus{gus.employee_number}"
        assert hasher.verify(new_password, gus.password_hash)
        assert gus.must_change_password is True

    @pytest.mark.parametrize("who", ["hana", "mona", "eve"])
    def test_only_admin_resets(self, auth_service, actors, org, who):
        """HR, managers and employees cannot reset passwords."""
        with pytest.raises(PermissionDeniedError):
            auth_service.reset_password(actors[who], org["gus"].id)

    def test_reset_unknown_employee(self, auth_service, actors):
        """Resetting a missing employee is not found."""
        with pytest.raises(NotFoundError):
            auth_service.reset_password(actors["ada"], "ghost")


class TestPasswordHasher:
    """Test cases for bcrypt hashing limits."""

    def test_long_secret_hashes_and_verifies(self, hasher):
        """Secrets past bcrypt's 72 byte input are hashed, not rejected."""
        secret = "é" * 50 + "EMP001"

        hashed = hasher.hash(secret)

        assert hasher.verify(secret, hashed)
        assert not hasher.verify("é" * 35, hashed)

    def test_long_login_attempt_fails_cleanly(self, auth_service, org):
        """An oversized password at login is just a wrong password."""
        with pytest.raises(AuthenticationError):
            auth_service.authenticate(org["eve"].email, "x" * 500)
