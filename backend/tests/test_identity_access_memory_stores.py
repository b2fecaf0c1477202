"""
In-memory Role Store, Directory and identity double.
"""
from __future__ import annotations

import pytest

from identity_access.domain import DEFAULT_ROLE, Account, Role, SchoolClass
from identity_access.errors import NotFound, OperationFailed, Unauthorized
from identity_access.stores import InMemoryDirectory, InMemoryIdentity, InMemoryRoleStore


def test_set_roles_replaces_the_whole_set():
    store = InMemoryRoleStore()
    store.set_roles("u1", {Role.ADMIN, Role.PARENT})
    store.set_roles("u1", {Role.TEACHER, Role.COORDINATOR})
    assert store.get_roles("u1") == {Role.TEACHER, Role.COORDINATOR}
    assert store.has_role("u1", Role.TEACHER)
    assert not store.has_role("u1", Role.ADMIN)


def test_set_roles_is_idempotent_and_empty_set_clears():
    store = InMemoryRoleStore()
    store.set_roles("u1", {Role.TEACHER})
    store.set_roles("u1", {Role.TEACHER})
    assert store.get_roles("u1") == {Role.TEACHER}
    store.set_roles("u1", set())
    assert store.get_roles("u1") == set()
    assert store.account_ids_with_role(Role.TEACHER) == []


def test_returned_role_set_is_a_copy():
    store = InMemoryRoleStore()
    store.set_roles("u1", {Role.TEACHER})
    store.get_roles("u1").add(Role.ADMIN)
    assert store.get_roles("u1") == {Role.TEACHER}


def test_roles_for_accounts_and_account_ids_with_role():
    store = InMemoryRoleStore()
    store.set_roles("b", {Role.COORDINATOR})
    store.set_roles("a", {Role.COORDINATOR, Role.TEACHER})
    assert store.account_ids_with_role(Role.COORDINATOR) == ["a", "b"]
    assert store.roles_for_accounts(["a", "zzz"]) == {"a": {Role.COORDINATOR, Role.TEACHER}, "zzz": set()}


def test_directory_queries_with_empty_ids_return_nothing():
    directory = InMemoryDirectory()
    directory.add_account(Account(id="t1", email="t@x.com"))
    directory.add_class(SchoolClass(id="c1", name="5a", created_by="t1"))
    assert directory.list_accounts_by_ids([]) == []
    assert directory.list_accounts_managed_by([]) == []
    assert directory.list_classes_for_staff([]) == []
    assert directory.count_students_by_class([]) == {}


def test_directory_classes_match_creator_manager_or_teacher():
    directory = InMemoryDirectory()
    directory.add_class(SchoolClass(id="c1", name="7b", created_by="t1"))
    directory.add_class(SchoolClass(id="c2", name="5a", created_by="x", teacher_id="t1"))
    directory.add_class(SchoolClass(id="c3", name="6c", created_by="x", managed_by="t1"))
    directory.add_class(SchoolClass(id="c4", name="8d", created_by="other"))
    assert [c.name for c in directory.list_classes_for_staff(["t1"])] == ["5a", "6c", "7b"]

    directory.add_student("s1", "c1")
    directory.add_student("s2", "c1")
    directory.add_student("s3", None)
    assert directory.count_students_by_class(["c1", "c2"]) == {"c1": 2, "c2": 0}


def test_identity_create_assigns_default_role_and_rejects_duplicates():
    directory, roles = InMemoryDirectory(), InMemoryRoleStore()
    identity = InMemoryIdentity(directory, roles)
    account = identity.create_user(email="a@x.com", password="secret1", full_name="a@x.com")
    assert roles.get_roles(account.id) == {DEFAULT_ROLE}
    with pytest.raises(OperationFailed) as exc:
        identity.create_user(email="A@x.com", password="other", full_name="")
    assert exc.value.code == "email_exists"


def test_identity_delete_drops_account_roles_and_sessions():
    directory, roles = InMemoryDirectory(), InMemoryRoleStore()
    identity = InMemoryIdentity(directory, roles)
    account = identity.create_user(email="a@x.com", password="secret1", full_name="")
    token = identity.issue_session(account.id).token
    assert identity.verify_session(token).id == account.id

    identity.delete_user(account.id)
    assert directory.get_account(account.id) is None
    assert roles.get_roles(account.id) == set()
    with pytest.raises(Unauthorized):
        identity.verify_session(token)
    with pytest.raises(NotFound):
        identity.delete_user(account.id)


def test_identity_rejects_expired_sessions():
    directory, roles = InMemoryDirectory(), InMemoryRoleStore()
    identity = InMemoryIdentity(directory, roles)
    account = identity.create_user(email="a@x.com", password="secret1", full_name="")
    token = identity.issue_session(account.id, ttl_seconds=-10).token
    with pytest.raises(Unauthorized) as exc:
        identity.verify_session(token)
    assert exc.value.code == "session_expired"
