"""Audit logging package."""

from zakat_tracker.audit.logger import AuditLogger

__all__ = ["AuditLogger"]
