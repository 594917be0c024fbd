"""
Permission utilities for the jukebox bot.

Administrators may always use the bot. Otherwise, when ``ALLOWED_ROLES`` lists
role ids, the member needs at least one of them; an empty list lets everyone in.
"""

from typing import Sequence

import discord


class PermissionUtils:
    """Utilities for the role-based access gate."""

    @staticmethod
    def is_admin(member: discord.abc.User) -> bool:
        permissions = getattr(member, "guild_permissions", None)
        return bool(permissions and permissions.administrator)

    @staticmethod
    def has_permission(member: discord.abc.User, allowed_roles: Sequence[str]) -> bool:
        """Check if a member may use the bot commands and player controls."""
        if PermissionUtils.is_admin(member):
            return True
        if not allowed_roles:
            return True
        allowed = {str(role_id) for role_id in allowed_roles}
        return any(str(role.id) in allowed for role in getattr(member, "roles", []))
