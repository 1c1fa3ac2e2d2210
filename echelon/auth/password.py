"""Password hashing and policy utilities."""

from typing import List, Optional

import bcrypt

from echelon.config.settings import get_settings

# bcrypt only uses the first 72 bytes of a secret
MAX_PASSWORD_BYTES = 72


def _secret_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:MAX_PASSWORD_BYTES]


class PasswordHasher:
    """Hashes and verifies credentials with bcrypt."""

    def __init__(self, rounds: Optional[int] = None, min_length: Optional[int] = None):
        settings = get_settings().auth
        self.rounds = rounds or settings.bcrypt_rounds
        self.min_length = min_length or settings.password_min_length

    def hash(self, password: str) -> str:
        """Hash a password using bcrypt.

        Args:
            password: Plain text password

        Returns:
            Hashed password string
        """
        salt = bcrypt.gensalt(rounds=self.rounds)
        hashed = bcrypt.hashpw(_secret_bytes(password), salt)
        return hashed.decode("utf-8")

    def verify(self, password: str, hashed: str) -> bool:
        """Verify a password against a hash.

        Args:
            password: Plain text password
            hashed: Hashed password

        Returns:
            True if password matches
        """
        try:
            return bcrypt.checkpw(_secret_bytes(password), hashed.encode("utf-8"))
        except (ValueError, UnicodeDecodeError, UnicodeEncodeError):
            # Invalid hash format or encoding issues
            return False

    def validate_new_password(self, new_password: str, current_password: str) -> List[str]:
        """Check a new password against the policy.

        Returns:
            List of policy violations (empty if the password is acceptable)
        """
        errors = []
        if len(new_password) < self.min_length:
            errors.append(f"New password must be at least {self.min_length} characters")
        if len(new_password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            errors.append(f"New password must be at most {MAX_PASSWORD_BYTES} bytes")
        if new_password == current_password:
            errors.append("New password must be different from current password")
        return errors


def default_password(first_name: str, employee_number: str) -> str:
    """
    Derive the initial credential for a new or reset account.

    Legacy contract: first name followed by employee number. This is
    guessable and only acceptable because the account is flagged to change
    it on first login.
    """
    return f"{first_name}{employee_number}"
