from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from familyos.core.enforcement import PolicyEnforcementPoint
from familyos.core.membership import SupabaseMembershipDirectory
from familyos.database.supabase_client import get_service_supabase, get_supabase
from familyos.main import app
from familyos.modules.auth.service import clear_auth_cache
from familyos.modules.groups.service import GroupService

from tests.fakes import FakeSupabase

GROUP_ID = "group-1"
OWNER = "u1-owner"
MEMBER = "u2-member"
VIEWER = "u3-viewer"
OUTSIDER = "u4-outsider"

TOKENS = {
    OWNER: "token-owner",
    MEMBER: "token-member",
    VIEWER: "token-viewer",
    OUTSIDER: "token-outsider",
}


class TickingClock:
    """Returns a strictly increasing time on every call."""

    def __init__(self):
        self.current = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


@pytest.fixture
def db() -> FakeSupabase:
    db = FakeSupabase()
    db.rows("family_groups").append({
        "id": GROUP_ID,
        "name": "The Rossis",
        "owner_id": OWNER,
        "invite_code": "ROSSI123",
        "icon": "🏠",
        "created_at": "2024-01-01T00:00:00+00:00",
    })
    for user_id, role in ((OWNER, "owner"), (MEMBER, "member"), (VIEWER, "viewer")):
        db.rows("group_members").append({
            "id": f"m-{user_id}",
            "group_id": GROUP_ID,
            "user_id": user_id,
            "role": role,
            "created_at": "2024-01-01T00:00:00+00:00",
        })
    for user_id, token in TOKENS.items():
        db.auth.add_user(token, user_id)
    return db


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture
def directory(db) -> SupabaseMembershipDirectory:
    return SupabaseMembershipDirectory(db)


@pytest.fixture
def pep(db, directory, clock) -> PolicyEnforcementPoint:
    return PolicyEnforcementPoint(db, directory, clock=clock)


@pytest.fixture
def groups(db, directory) -> GroupService:
    return GroupService(db, directory)


@pytest.fixture
def client(db):
    clear_auth_cache()
    app.dependency_overrides[get_supabase] = lambda: db
    app.dependency_overrides[get_service_supabase] = lambda: db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    clear_auth_cache()


def auth(user_id: str) -> dict:
    return {"Authorization": f"Bearer {TOKENS[user_id]}"}
