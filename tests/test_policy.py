"""
Access policy decisions - pure functions, no database
"""

from types import SimpleNamespace
from uuid import uuid4

import pytest

from taskmanager.core.exceptions import AuthorizationError, ConflictError, IntegrityError
from taskmanager.core.policy import (
    DenialReason,
    SelfAction,
    can_archive_task,
    can_deactivate_or_delete_self,
    can_delete_task,
    can_delete_user,
    can_modify_task,
    can_read_task,
    can_reassign_role,
)
from taskmanager.models import UserRole


def principal(role=UserRole.USER):
    return SimpleNamespace(id=uuid4(), role=role)


class FakeTaskCounter:
    def __init__(self, count):
        self.count = count
        self.calls = []

    def count_tasks_referencing(self, user_id):
        self.calls.append(user_id)
        return self.count


@pytest.fixture
def creator():
    return principal()


@pytest.fixture
def assignee():
    return principal()


@pytest.fixture
def task(creator, assignee):
    return SimpleNamespace(id=uuid4(), created_by_id=creator.id, assigned_to_id=assignee.id)


class TestTaskCapabilities:

    def test_stranger_cannot_read_or_modify(self, task):
        stranger = principal()

        read = can_read_task(stranger, task)
        modify = can_modify_task(stranger, task)

        assert not read
        assert not modify
        assert read.reason == DenialReason.NOT_OWNER_OR_ASSIGNEE
        assert modify.reason == DenialReason.NOT_OWNER_OR_ASSIGNEE

    @pytest.mark.parametrize("check", [can_read_task, can_modify_task, can_delete_task, can_archive_task])
    def test_creator_has_every_capability(self, check, creator, task):
        assert check(creator, task)

    @pytest.mark.parametrize("check", [can_read_task, can_modify_task, can_delete_task, can_archive_task])
    def test_admin_has_every_capability(self, check, task):
        assert check(principal(UserRole.ADMIN), task)

    def test_assignee_can_modify_but_not_delete(self, assignee, task):
        assert can_read_task(assignee, task)
        assert can_modify_task(assignee, task)

        delete = can_delete_task(assignee, task)
        assert not delete
        assert delete.reason == DenialReason.NOT_CREATOR_OR_ADMIN

    def test_assignee_cannot_archive(self, assignee, task):
        decision = can_archive_task(assignee, task)
        assert not decision
        assert decision.reason == DenialReason.NOT_CREATOR_OR_ADMIN

    def test_unassigned_task_only_grants_creator(self, creator):
        task = SimpleNamespace(id=uuid4(), created_by_id=creator.id, assigned_to_id=None)

        assert can_modify_task(creator, task)
        assert not can_modify_task(principal(), task)

    def test_ids_compare_by_value_across_types(self, creator):
        task = SimpleNamespace(id=uuid4(), created_by_id=str(creator.id), assigned_to_id=None)
        assert can_delete_task(creator, task)

    def test_denial_enforces_access_denied(self, task):
        with pytest.raises(AuthorizationError) as exc_info:
            can_read_task(principal(), task).enforce()

        assert exc_info.value.status_code == 403
        assert exc_info.value.reason == "access-denied"
        assert exc_info.value.policy_reason == "not-owner-or-assignee"

    def test_allowed_decision_enforce_is_noop(self, creator, task):
        can_read_task(creator, task).enforce()


class TestSelfProtection:

    @pytest.mark.parametrize("role", [UserRole.USER, UserRole.ADMIN])
    def test_self_is_always_denied(self, role):
        user = principal(role)

        assert not can_deactivate_or_delete_self(user.id, user.id)
        assert not can_deactivate_or_delete_self(user.id, user.id, SelfAction.DELETE)

    def test_reason_follows_action(self):
        user_id = uuid4()

        deactivate = can_deactivate_or_delete_self(user_id, user_id, SelfAction.DEACTIVATE)
        delete = can_deactivate_or_delete_self(user_id, user_id, SelfAction.DELETE)

        assert deactivate.reason == DenialReason.CANNOT_DEACTIVATE_SELF
        assert delete.reason == DenialReason.CANNOT_DELETE_SELF

    def test_other_user_is_allowed(self):
        assert can_deactivate_or_delete_self(uuid4(), uuid4())

    def test_self_denial_maps_to_conflict_400(self):
        user_id = uuid4()
        with pytest.raises(ConflictError) as exc_info:
            can_deactivate_or_delete_self(user_id, user_id).enforce()

        assert exc_info.value.status_code == 400
        assert exc_info.value.reason == "cannot-deactivate-self"


class TestUserAdministration:

    def test_admin_deleting_user_with_tasks_is_rejected(self):
        admin = principal(UserRole.ADMIN)
        target = principal()
        counter = FakeTaskCounter(count=1)

        decision = can_delete_user(admin, target, counter)

        assert not decision
        assert decision.reason == DenialReason.USER_HAS_TASKS
        assert counter.calls == [target.id]
        with pytest.raises(IntegrityError) as exc_info:
            decision.enforce()
        assert exc_info.value.reason == "user-has-tasks"

    def test_admin_can_delete_user_without_tasks(self):
        assert can_delete_user(principal(UserRole.ADMIN), principal(), FakeTaskCounter(count=0))

    def test_non_admin_cannot_delete_users(self):
        counter = FakeTaskCounter(count=0)

        decision = can_delete_user(principal(), principal(), counter)

        assert decision.reason == DenialReason.NOT_ADMIN
        assert counter.calls == []

    def test_admin_cannot_delete_self(self):
        admin = principal(UserRole.ADMIN)

        decision = can_delete_user(admin, admin, FakeTaskCounter(count=0))

        assert decision.reason == DenialReason.CANNOT_DELETE_SELF

    def test_non_admin_can_never_reassign_roles(self):
        decision = can_reassign_role(principal())

        assert not decision
        assert decision.reason == DenialReason.NOT_ADMIN
        with pytest.raises(AuthorizationError) as exc_info:
            decision.enforce()
        assert exc_info.value.reason == "not-admin"

    def test_admin_can_reassign_roles(self):
        assert can_reassign_role(principal(UserRole.ADMIN))

    def test_plain_string_role_is_recognized(self):
        assert can_reassign_role(SimpleNamespace(id=uuid4(), role="admin"))
