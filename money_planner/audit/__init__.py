"""Audit logging package."""

from money_planner.audit.logger import AuditLogger

__all__ = ["AuditLogger"]
