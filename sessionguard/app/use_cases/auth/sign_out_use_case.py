"""
Sign-Out Use Case
"""

from sessionguard.app.services.audit_trail import AuditTrailService
from sessionguard.app.services.session_manager import SessionManager
from sessionguard.domain.audit_payloads import LogoutEventData
from sessionguard.domain.context import RequestContext
from sessionguard.domain.entities import AuditEventType
from sessionguard.libs.result import Result, Return

from .dtos import SignOutResponse


class SignOutUseCase:
    """
    Use case for ending the caller's own session.

    Business Rules:
    - Signing out twice is not an error
    - Only the call that revoked the session writes the logout event
    """

    def __init__(self, session_manager: SessionManager, audit: AuditTrailService):
        self.session_manager = session_manager
        self.audit = audit

    async def execute(self, token: str, context: RequestContext) -> Result[SignOutResponse]:
        session = await self.session_manager.validate(token, context=context)

        revoked = await self.session_manager.revoke(
            token, revoked_by="user", reason="user_logout", context=context
        )
        if revoked.is_err():
            return revoked

        if revoked.value and session.is_ok():
            self.audit.emit(
                self.audit.build_event(
                    AuditEventType.logout,
                    "user_logout",
                    user_id=session.value.user_id,
                    session_id=session.value.id,
                    organization_id=session.value.organization_id,
                    context=context,
                    data=LogoutEventData(reason="user_logout"),
                )
            )

        return Return.ok(SignOutResponse(status="signed_out", message="Signed out successfully"))
