"""
Resource envelope: the ownership and audit fields every governed resource carries.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel

from familyos.config.permissions_config import RESOURCE_KINDS
from familyos.core.roles import EditMode


class ResourceKind(str, Enum):
    CARD = "card"
    DOCUMENT = "document"
    EVENT = "event"
    LIST = "list"
    SUBSCRIPTION = "subscription"
    NOTE = "note"

    @property
    def table(self) -> str:
        return RESOURCE_KINDS[self.value]["table"]

    @property
    def route(self) -> str:
        return RESOURCE_KINDS[self.value]["route"]


# Stamped by the enforcement point, never taken from the client
AUDIT_FIELDS = frozenset({"updated_by", "updated_at"})
# Fixed at creation
IMMUTABLE_FIELDS = frozenset({"group_id", "created_by"})


class ResourceEnvelope(BaseModel):
    group_id: str
    created_by: Optional[str] = None
    edit_mode: Optional[EditMode] = None
    updated_by: Optional[str] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "ResourceEnvelope":
        created_by = row.get("created_by")
        # Documents uploaded before the envelope existed only carry uploaded_by
        if created_by is None and row.get("uploaded_by"):
            created_by = row["uploaded_by"]
        return cls(
            group_id=row["group_id"],
            created_by=created_by,
            edit_mode=row.get("edit_mode"),
            updated_by=row.get("updated_by"),
            updated_at=row.get("updated_at"),
        )

    @property
    def effective_edit_mode(self) -> EditMode:
        """Rows created before edit_mode existed behave as public."""
        return self.edit_mode or EditMode.PUBLIC
