"""Core app configuration, roles, and database."""

from addressbook.core.config import get_settings, settings
from addressbook.core.roles import Permission, Role

__all__ = ["get_settings", "settings", "Permission", "Role"]
