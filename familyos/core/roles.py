"""
Role registry: the family roles, their display metadata and privilege ordering.

Ranks are for comparisons and display only. Authorization decisions are made
by the explicit rule table in familyos.core.policy.
"""

from enum import Enum
from typing import List, Optional

from familyos.config.permissions_config import ROLE_INFO


class Role(str, Enum):
    OWNER = "owner"
    MEMBER = "member"
    VIEWER = "viewer"


class EditMode(str, Enum):
    PRIVATE = "private"
    PUBLIC = "public"


def all_roles() -> List[Role]:
    """Roles from most to least privileged."""
    return sorted(Role, key=role_rank, reverse=True)


def is_valid_role(value) -> bool:
    return parse_role(value) is not None


def parse_role(value) -> Optional[Role]:
    """Return the Role for a stored value, or None when it is not a known role."""
    if isinstance(value, Role):
        return value
    try:
        return Role(value)
    except ValueError:
        return None


def role_rank(role: Role) -> int:
    return ROLE_INFO[Role(role).value]["rank"]


def role_label(role: Role) -> str:
    return ROLE_INFO[Role(role).value]["label"]


def role_description(role: Role) -> str:
    return ROLE_INFO[Role(role).value]["description"]


def role_icon(role: Role) -> str:
    return ROLE_INFO[Role(role).value]["icon"]


def is_maximal_role(role: Role) -> bool:
    return role_rank(role) == max(info["rank"] for info in ROLE_INFO.values())


def has_higher_or_equal_role(role: Role, target_role: Role) -> bool:
    return role_rank(role) >= role_rank(target_role)
