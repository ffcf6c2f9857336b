"""Middleware package exports."""

from .audit import AuditMiddleware

__all__ = ["AuditMiddleware"]
