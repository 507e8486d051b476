"""
Admin user directory.
"""

from greyn.engines.users.user_directory import (
    UserDirectoryService,
    format_last_active,
    portal_access,
    user_to_dict,
)

__all__ = ["UserDirectoryService", "format_last_active", "portal_access", "user_to_dict"]
