"""Tests for the Supabase-backed membership directory."""

from __future__ import annotations

from familyos.core.roles import Role

from tests.conftest import GROUP_ID, MEMBER, OUTSIDER, OWNER, VIEWER


class TestRoleOf:
    def test_roles_are_resolved(self, directory) -> None:
        assert directory.role_of(GROUP_ID, OWNER) is Role.OWNER
        assert directory.role_of(GROUP_ID, MEMBER) is Role.MEMBER
        assert directory.role_of(GROUP_ID, VIEWER) is Role.VIEWER

    def test_lookup_miss_is_none(self, directory) -> None:
        assert directory.role_of(GROUP_ID, OUTSIDER) is None
        assert directory.role_of("group-2", OWNER) is None

    def test_empty_ids_skip_storage(self, directory, db) -> None:
        assert directory.role_of("", OWNER) is None
        assert directory.role_of(GROUP_ID, None) is None
        assert db.calls == []

    def test_unknown_stored_role_is_not_membership(self, directory, db) -> None:
        db.rows("group_members").append({"group_id": GROUP_ID, "user_id": OUTSIDER, "role": "admin"})
        assert directory.role_of(GROUP_ID, OUTSIDER) is None

    def test_every_lookup_reads_storage(self, directory, db) -> None:
        directory.role_of(GROUP_ID, MEMBER)
        directory.role_of(GROUP_ID, MEMBER)
        assert db.calls == [("group_members", "select"), ("group_members", "select")]

