from pydantic import BaseModel
from typing import Optional, List


class MembershipSummary(BaseModel):
    group_id: str
    role: str
    role_label: str


class CurrentUserResponse(BaseModel):
    id: str
    email: Optional[str] = None
    user_metadata: dict = {}
    memberships: List[MembershipSummary] = []
