"""
Audit Use Cases

All audit-related business logic.
"""

from .get_audit_events_use_case import GetAuditEventsUseCase, serialize_event

__all__ = [
    "GetAuditEventsUseCase",
    "serialize_event",
]
