"""
Platform (REST) Role Store and Directory against a fake supabase client.

The REST interface has no transactions: a failed insert after the delete
leaves the account roleless and must surface as RolesCleared.
"""
from __future__ import annotations

import pytest

from identity_access.domain import Role
from identity_access.errors import RolesCleared, StoreUnavailable
from identity_access.stores_supabase import SupabaseDirectory, SupabaseRoleStore
from utils.fake_supabase import FakeSupabaseClient


def _client() -> FakeSupabaseClient:
    return FakeSupabaseClient(
        {
            "user_roles": [
                {"user_id": "u1", "role": "parent"},
                {"user_id": "c1", "role": "coordinator"},
            ],
            "profiles": [
                {"id": "c1", "email": "cora@x.com", "full_name": "Cora", "managed_by": None},
                {"id": "t1", "email": "tom@x.com", "full_name": "Tom", "managed_by": "c1"},
            ],
            "classes": [
                {"id": "k1", "name": "7b", "created_by": "t1", "teacher_id": None, "coordinator_id": None, "managed_by": None},
                {"id": "k2", "name": "5a", "created_by": "zz", "teacher_id": None, "coordinator_id": None, "managed_by": None},
            ],
            "students": [{"id": "s1", "class_id": "k1"}, {"id": "s2", "class_id": "k1"}],
        }
    )


def test_set_roles_replaces_set():
    client = _client()
    store = SupabaseRoleStore(client)
    store.set_roles("u1", {Role.TEACHER, Role.COORDINATOR})
    assert store.get_roles("u1") == {Role.TEACHER, Role.COORDINATOR}
    assert client.calls[:2] == [("user_roles", "delete"), ("user_roles", "insert")]


def test_failed_insert_after_delete_raises_roles_cleared():
    client = _client()
    client.fail.add(("user_roles", "insert"))
    store = SupabaseRoleStore(client)
    with pytest.raises(RolesCleared) as exc:
        store.set_roles("u1", {Role.ADMIN})
    assert exc.value.account_id == "u1"
    assert exc.value.status_code == 500
    # The inconsistency window is real: the account is now roleless.
    assert store.get_roles("u1") == set()


def test_query_failure_raises_store_unavailable():
    client = _client()
    client.fail.add(("user_roles", "select"))
    with pytest.raises(StoreUnavailable):
        SupabaseRoleStore(client).get_roles("u1")


def test_account_ids_with_role_and_roles_for_accounts():
    store = SupabaseRoleStore(_client())
    assert store.account_ids_with_role(Role.COORDINATOR) == ["c1"]
    assert store.roles_for_accounts(["u1", "none"]) == {"u1": {Role.PARENT}, "none": set()}
    assert store.roles_for_accounts([]) == {}


def test_classes_for_staff_builds_or_filter_and_guards_empty_ids():
    client = _client()
    directory = SupabaseDirectory(client)
    assert directory.list_classes_for_staff([]) == []
    assert client.or_filters == []

    classes = directory.list_classes_for_staff(["t1"])
    assert [c.id for c in classes] == ["k1"]
    assert client.or_filters == ["created_by.in.(t1),managed_by.in.(t1),teacher_id.in.(t1)"]


def test_directory_profiles_and_student_counts():
    directory = SupabaseDirectory(_client())
    assert [a.email for a in directory.list_accounts()] == ["cora@x.com", "tom@x.com"]
    assert directory.get_account("t1").managed_by == "c1"
    assert [a.id for a in directory.list_accounts_managed_by(["c1"])] == ["t1"]
    assert directory.count_students_by_class(["k1", "k2"]) == {"k1": 2, "k2": 0}
