from abc import ABC, abstractmethod
from uuid import UUID

from sessionguard.domain import errors
from sessionguard.domain.entities import User
from sessionguard.libs.result import Result, Return

MIN_PASSWORD_LENGTH = 8
# bcrypt only reads the first 72 bytes and newer releases reject longer input
MAX_PASSWORD_BYTES = 72


def password_fits(password: str) -> bool:
    return len(password.encode("utf-8")) <= MAX_PASSWORD_BYTES


def validate_new_password(password: str) -> Result[None]:
    """Rules a password must meet before it is stored"""
    if len(password) < MIN_PASSWORD_LENGTH:
        return Return.err(errors.invalid_password())
    if not password_fits(password):
        return Return.err(
            errors.invalid_password(f"Password must be at most {MAX_PASSWORD_BYTES} bytes long")
        )
    return Return.ok(None)


class ICredentialVerifier(ABC):
    """
    Credential verification collaborator.

    The session core never reads or compares password material itself; it
    only reacts to the typed result of this interface.
    """

    @abstractmethod
    async def verify(self, email: str, password: str) -> Result[User]:
        """
        Returns:
            Ok(User) for a correct password on an active account.
            INVALID_CREDENTIALS for unknown email or wrong password,
            ACCOUNT_INACTIVE for a correct password on an inactive account.
        """
        pass

    @abstractmethod
    async def update_password(self, user_id: UUID, password: str) -> Result[bool]:
        """Replace the stored password for a user"""
        pass
