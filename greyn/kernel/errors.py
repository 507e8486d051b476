"""
Domain errors raised by services and mapped to HTTP statuses in greyn.main.

Business-rule violations raise plain ValueError, which routers turn into 400.
"""


class NotFoundError(LookupError):
    """A requested record does not exist (404)."""


class ConflictError(Exception):
    """The change would duplicate an existing record (409)."""
