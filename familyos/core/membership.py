"""
Membership directory: resolves the role a user holds in a family group.

Roles are read from group_members at decision time on every call. Nothing is
cached, so a demotion takes effect on the very next request.
"""

from typing import Optional, Protocol

from supabase import Client
import logging

from familyos.core.roles import Role, parse_role

logger = logging.getLogger(__name__)


class MembershipDirectory(Protocol):
    def role_of(self, group_id: str, user_id: str) -> Optional[Role]:
        """Return the user's role in the group, or None when they are not a member."""
        ...


class SupabaseMembershipDirectory:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def role_of(self, group_id: str, user_id: str) -> Optional[Role]:
        if not group_id or not user_id:
            return None
        result = self.supabase.table("group_members")\
            .select("role")\
            .eq("group_id", group_id)\
            .eq("user_id", user_id)\
            .limit(1)\
            .execute()
        if not result.data:
            return None
        stored = result.data[0].get("role")
        role = parse_role(stored)
        if role is None:
            logger.warning(f"Ignoring unknown role {stored!r} for user {user_id} in group {group_id}")
        return role

