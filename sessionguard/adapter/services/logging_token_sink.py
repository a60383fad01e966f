import logging
from datetime import datetime

from sessionguard.app.services.reset_token_sink import IResetTokenSink
from sessionguard.domain.entities import User

logger = logging.getLogger(__name__)


class LoggingResetTokenSink(IResetTokenSink):
    """
    Default sink for deployments without a mail pipeline.

    Records that a token was issued; the token itself is never logged.
    """

    async def deliver(self, user: User, token: str, expires_at: datetime) -> None:
        logger.info(
            "Password reset token issued for user %s (expires %s)",
            user.id,
            expires_at.isoformat(),
        )
