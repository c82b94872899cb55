"""Tests for the family group lifecycle and the role-change guard."""

from __future__ import annotations

import pytest
from fastapi import HTTPException

from familyos.core.envelope import ResourceKind
from familyos.core.exceptions import (
    InsufficientRole, InvariantViolation, LastOwnerError, MembershipConflict, NotAMember, ResourceNotFound
)
from familyos.core.roles import Role
from familyos.modules.groups.schemas import GroupCreate, GroupUpdate
from familyos.modules.groups.service import INVITE_CODE_ALPHABET, generate_invite_code

from tests.conftest import GROUP_ID, MEMBER, OUTSIDER, OWNER, VIEWER
from tests.fakes import FakeStorageError


def role_in_db(db, user_id, group_id=GROUP_ID):
    for row in db.rows("group_members"):
        if row["group_id"] == group_id and row["user_id"] == user_id:
            return row["role"]
    return None


def populate_all_kinds(pep):
    for kind in ResourceKind:
        pep.create_resource(kind, MEMBER, GROUP_ID, {"title": kind.value})


class TestCreateAndJoin:
    def test_creator_becomes_owner(self, groups, db) -> None:
        group = groups.create_group(GroupCreate(name="Smiths"), OUTSIDER)
        assert role_in_db(db, OUTSIDER, group["id"]) == "owner"
        assert len(group["invite_code"]) == 8

    def test_failed_owner_insert_rolls_back_group(self, groups, db) -> None:
        db.fail_on("group_members", "insert")
        with pytest.raises(FakeStorageError):
            groups.create_group(GroupCreate(name="Smiths"), OUTSIDER)
        assert db.count("family_groups", name="Smiths") == 0

    def test_invite_code_alphabet(self) -> None:
        code = generate_invite_code(12)
        assert len(code) == 12
        assert set(code) <= set(INVITE_CODE_ALPHABET)

    def test_join_by_invite_code_as_member(self, groups, db) -> None:
        membership = groups.join_group("rossi123", OUTSIDER)
        assert membership["role"] == "member"
        assert role_in_db(db, OUTSIDER) == "member"

    def test_join_twice_conflicts(self, groups) -> None:
        with pytest.raises(MembershipConflict):
            groups.join_group("ROSSI123", MEMBER)

    def test_unknown_invite_code(self, groups) -> None:
        with pytest.raises(HTTPException) as exc_info:
            groups.join_group("NOPE", OUTSIDER)
        assert exc_info.value.status_code == 404

    def test_invite_preview_hides_code_and_owner(self, groups) -> None:
        preview = groups.get_group_by_invite_code("ROSSI123")
        assert preview == {"id": GROUP_ID, "name": "The Rossis", "icon": "🏠"}

    def test_list_groups_only_mine(self, groups) -> None:
        assert [g["id"] for g in groups.list_groups(VIEWER)] == [GROUP_ID]
        assert groups.list_groups(OUTSIDER) == []


class TestGroupSettings:
    def test_owner_updates_group(self, groups) -> None:
        updated = groups.update_group(GROUP_ID, OWNER, GroupUpdate(name="Rossi family", icon="🌳"))
        assert updated["name"] == "Rossi family"
        assert updated["icon"] == "🌳"

    @pytest.mark.parametrize("actor", [MEMBER, VIEWER])
    def test_non_owner_cannot_update_group(self, groups, actor) -> None:
        with pytest.raises(InsufficientRole):
            groups.update_group(GROUP_ID, actor, GroupUpdate(name="Hijacked"))

    def test_outsider_cannot_see_group(self, groups) -> None:
        with pytest.raises(NotAMember):
            groups.get_group(GROUP_ID, OUTSIDER)

    def test_rotate_invite_code(self, groups) -> None:
        rotated = groups.rotate_invite_code(GROUP_ID, OWNER)
        assert rotated["invite_code"] != "ROSSI123"
        with pytest.raises(HTTPException):
            groups.get_group_by_invite_code("ROSSI123")


class TestRoleChanges:
    def test_owner_changes_role(self, groups, db) -> None:
        groups.update_member_role(GROUP_ID, OWNER, MEMBER, Role.VIEWER)
        assert role_in_db(db, MEMBER) == "viewer"

    @pytest.mark.parametrize("actor", [MEMBER, VIEWER])
    def test_non_owner_cannot_change_roles(self, groups, db, actor) -> None:
        with pytest.raises(InsufficientRole):
            groups.update_member_role(GROUP_ID, actor, VIEWER, Role.MEMBER)
        assert role_in_db(db, VIEWER) == "viewer"

    @pytest.mark.parametrize("actor", [MEMBER, VIEWER])
    def test_no_self_escalation(self, groups, db, actor) -> None:
        before = role_in_db(db, actor)
        with pytest.raises(InsufficientRole):
            groups.update_member_role(GROUP_ID, actor, actor, Role.OWNER)
        assert role_in_db(db, actor) == before

    def test_outsider_cannot_change_roles(self, groups) -> None:
        with pytest.raises(NotAMember):
            groups.update_member_role(GROUP_ID, OUTSIDER, MEMBER, Role.OWNER)

    def test_last_owner_cannot_step_down(self, groups, db) -> None:
        with pytest.raises(LastOwnerError):
            groups.update_member_role(GROUP_ID, OWNER, OWNER, Role.MEMBER)
        assert role_in_db(db, OWNER) == "owner"

    def test_owner_steps_down_after_promoting_another(self, groups, db) -> None:
        groups.update_member_role(GROUP_ID, OWNER, MEMBER, Role.OWNER)
        groups.update_member_role(GROUP_ID, OWNER, OWNER, Role.MEMBER)
        assert role_in_db(db, OWNER) == "member"
        assert role_in_db(db, MEMBER) == "owner"


class TestMemberRemoval:
    @pytest.mark.parametrize("actor", [MEMBER, VIEWER])
    def test_anyone_can_leave(self, groups, db, actor) -> None:
        groups.remove_member(GROUP_ID, actor, actor)
        assert role_in_db(db, actor) is None

    def test_owner_removes_anyone(self, groups, db) -> None:
        groups.remove_member(GROUP_ID, OWNER, MEMBER)
        assert role_in_db(db, MEMBER) is None

    def test_member_cannot_remove_others(self, groups, db) -> None:
        with pytest.raises(InsufficientRole):
            groups.remove_member(GROUP_ID, MEMBER, VIEWER)
        assert role_in_db(db, VIEWER) == "viewer"

    def test_last_owner_cannot_leave(self, groups, db) -> None:
        with pytest.raises(LastOwnerError):
            groups.remove_member(GROUP_ID, OWNER, OWNER)
        assert role_in_db(db, OWNER) == "owner"


class TestGroupDeletion:
    def test_owner_deletes_everything(self, groups, pep, db) -> None:
        populate_all_kinds(pep)
        groups.delete_group(GROUP_ID, OWNER)
        assert db.count("family_groups", id=GROUP_ID) == 0
        assert db.count("group_members", group_id=GROUP_ID) == 0
        for kind in ResourceKind:
            assert db.count(kind.table, group_id=GROUP_ID) == 0

    @pytest.mark.parametrize("actor", [MEMBER, VIEWER])
    def test_non_owner_cannot_delete(self, groups, db, actor) -> None:
        with pytest.raises(InsufficientRole):
            groups.delete_group(GROUP_ID, actor)
        assert db.count("family_groups", id=GROUP_ID) == 1

    def test_failed_delete_leaves_everything(self, groups, pep, db) -> None:
        populate_all_kinds(pep)
        db.fail_on("family_groups", "delete")
        with pytest.raises(FakeStorageError):
            groups.delete_group(GROUP_ID, OWNER)
        assert db.count("family_groups", id=GROUP_ID) == 1
        assert db.count("group_members", group_id=GROUP_ID) == 3
        for kind in ResourceKind:
            assert db.count(kind.table, group_id=GROUP_ID) == 1

    def test_orphaned_rows_are_reported(self, groups, pep, db) -> None:
        populate_all_kinds(pep)
        db.skip_cascade.add("notes")
        with pytest.raises(InvariantViolation):
            groups.delete_group(GROUP_ID, OWNER)


class TestConcurrentMembershipChanges:
    def test_owners_stepping_down_together_keep_one_owner(self, groups, db) -> None:
        groups.update_member_role(GROUP_ID, OWNER, MEMBER, Role.OWNER)

        def other_owner_steps_down_first():
            for row in db.rows("group_members"):
                if row["user_id"] == MEMBER:
                    row["role"] = "member"

        db.before_write = other_owner_steps_down_first
        with pytest.raises(LastOwnerError):
            groups.update_member_role(GROUP_ID, OWNER, OWNER, Role.VIEWER)
        assert role_in_db(db, OWNER) == "owner"

    def test_owner_demoted_before_role_change_is_rejected(self, groups, db) -> None:
        groups.update_member_role(GROUP_ID, OWNER, MEMBER, Role.OWNER)

        def demoted_by_other_owner():
            for row in db.rows("group_members"):
                if row["user_id"] == OWNER:
                    row["role"] = "member"

        db.before_write = demoted_by_other_owner
        with pytest.raises(InsufficientRole):
            groups.update_member_role(GROUP_ID, OWNER, VIEWER, Role.MEMBER)
        assert role_in_db(db, VIEWER) == "viewer"

    def test_owner_removed_before_removing_member_is_rejected(self, groups, db) -> None:
        groups.update_member_role(GROUP_ID, OWNER, MEMBER, Role.OWNER)

        def removed_by_other_owner():
            db.tables["group_members"] = [r for r in db.rows("group_members") if r["user_id"] != OWNER]

        db.before_write = removed_by_other_owner
        with pytest.raises(NotAMember):
            groups.remove_member(GROUP_ID, OWNER, VIEWER)
        assert role_in_db(db, VIEWER) == "viewer"

    def test_removing_a_missing_member(self, groups) -> None:
        with pytest.raises(ResourceNotFound):
            groups.remove_member(GROUP_ID, OWNER, OUTSIDER)
