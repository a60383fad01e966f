import asyncio
import logging
from functools import lru_cache
from uuid import UUID

import bcrypt

from sessionguard.app.services.credentials import (
    ICredentialVerifier,
    password_fits,
    validate_new_password,
)
from sessionguard.app.services.unit_of_work import UnitOfWorkFactory
from sessionguard.domain import errors
from sessionguard.domain.entities import User, UserStatus
from sessionguard.libs.result import Result, Return

logger = logging.getLogger(__name__)


@lru_cache(maxsize=None)
def _dummy_hash(rounds: int) -> bytes:
    return bcrypt.hashpw(b"dummy_password", bcrypt.gensalt(rounds))


class BcryptCredentialVerifier(ICredentialVerifier):
    """
    Verifies email/password pairs against bcrypt hashes stored on User.

    Business Rules:
    - Constant-time password comparison to prevent timing attacks
    - A dummy hash is checked when the email is unknown or the password
      is longer than bcrypt accepts
    - Inactive users are reported only after the password matched
    - Hashing runs off the event loop
    """

    def __init__(self, uow_factory: UnitOfWorkFactory, rounds: int = 12):
        self.uow_factory = uow_factory
        self.rounds = rounds

    def hash_password(self, password: str) -> str:
        return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(self.rounds)).decode()

    async def verify(self, email: str, password: str) -> Result[User]:
        async with self.uow_factory() as uow:
            user = await uow.users.get_by_email(email)

        if user is None or not password_fits(password):
            # Hash dummy password to maintain constant time
            await asyncio.to_thread(bcrypt.checkpw, b"dummy_password", _dummy_hash(self.rounds))
            return Return.err(errors.invalid_credentials())

        try:
            password_valid = await asyncio.to_thread(
                bcrypt.checkpw, password.encode("utf-8"), user.password_hash.encode("utf-8")
            )
        except ValueError:
            logger.warning("Unreadable password hash for user %s", user.id)
            password_valid = False

        if not password_valid:
            return Return.err(errors.invalid_credentials())

        if user.status != UserStatus.active:
            return Return.err(errors.account_inactive())

        return Return.ok(user)

    async def update_password(self, user_id: UUID, password: str) -> Result[bool]:
        validation = validate_new_password(password)
        if validation.is_err():
            return validation

        try:
            password_hash = await asyncio.to_thread(self.hash_password, password)
            async with self.uow_factory() as uow:
                updated = await uow.users.update_password_hash(user_id, password_hash)
                await uow.commit()
        except Exception:
            logger.exception("Failed to update password for user %s", user_id)
            return Return.err(errors.system_error("Failed to update password"))
        return Return.ok(updated)
