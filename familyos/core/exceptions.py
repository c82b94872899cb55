"""
Domain exceptions raised by the authorization core.

Handlers in familyos.main turn these into HTTP responses. NotAMember and
InsufficientRole are kept apart for logs but render identically to callers.
"""

from typing import Optional


class FamilyOSError(Exception):
    """Base class for every error raised by the service."""


class AuthorizationError(FamilyOSError):
    def __init__(self, action: str, group_id: str, user_id: str, reason: Optional[str] = None):
        self.action = action
        self.group_id = group_id
        self.user_id = user_id
        self.reason = reason
        super().__init__(reason or f"{action} denied")


class NotAMember(AuthorizationError):
    """The actor has no membership row in the target group."""


class InsufficientRole(AuthorizationError):
    """The actor's role does not allow the action on the resource in its current state."""


class StaleEnvelope(FamilyOSError):
    """The resource changed between the authorization check and the write."""

    def __init__(self, table: str, resource_id: str):
        self.table = table
        self.resource_id = resource_id
        super().__init__(f"{table}/{resource_id} was modified concurrently")


class InvariantViolation(FamilyOSError):
    """A write would break an envelope or cascade invariant. Never partially applied."""


class ResourceNotFound(FamilyOSError):
    def __init__(self, table: str, resource_id: str):
        self.table = table
        self.resource_id = resource_id
        super().__init__(f"{table}/{resource_id} not found")


class LastOwnerError(FamilyOSError):
    """The change would leave the group without an owner."""


class MembershipConflict(FamilyOSError):
    """The user already belongs to the group."""
