"""Audit logging package."""

from triplog.audit.logger import AuditLogger, configure_logging

__all__ = ["AuditLogger", "configure_logging"]
