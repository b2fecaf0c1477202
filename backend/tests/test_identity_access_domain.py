"""
Role enumeration and domain helpers.

Roles form a total order for hierarchy purposes (admin > director >
coordinator > everyone else); parsing rejects unknown labels.
"""
from __future__ import annotations

import pytest

from identity_access.domain import (
    ALLOWED_ROLES,
    DEFAULT_ROLE,
    Account,
    Role,
    highest_hierarchy_role,
    normalize_account_id,
    parse_role,
    parse_roles,
    sorted_labels,
)


def test_allowed_roles_match_enum_values():
    assert ALLOWED_ROLES == {"admin", "director", "coordinator", "teacher", "parent", "student"}
    assert DEFAULT_ROLE is Role.PARENT


def test_hierarchy_order_is_total_for_elevated_roles():
    assert Role.ADMIN > Role.DIRECTOR > Role.COORDINATOR > Role.TEACHER
    assert Role.TEACHER >= Role.PARENT and Role.PARENT >= Role.TEACHER
    assert max([Role.COORDINATOR, Role.ADMIN, Role.TEACHER]) is Role.ADMIN


def test_parse_role_normalizes_and_rejects_unknown():
    assert parse_role(" Admin ") is Role.ADMIN
    with pytest.raises(ValueError):
        parse_role("superuser")
    with pytest.raises(ValueError):
        parse_role(None)
    assert parse_roles(["teacher", "coordinator", "teacher"]) == {Role.TEACHER, Role.COORDINATOR}


def test_highest_hierarchy_role_takes_the_top_role_not_a_union():
    assert highest_hierarchy_role({Role.COORDINATOR, Role.ADMIN}) is Role.ADMIN
    assert highest_hierarchy_role({Role.DIRECTOR, Role.TEACHER}) is Role.DIRECTOR
    assert highest_hierarchy_role({Role.TEACHER, Role.PARENT}) is None
    assert highest_hierarchy_role(set()) is None


def test_sorted_labels_most_privileged_first():
    assert sorted_labels({Role.TEACHER, Role.ADMIN, Role.PARENT}) == ["admin", "parent", "teacher"]


def test_account_display_name_falls_back_to_email():
    assert Account(id="1", email="a@x.com").display_name == "a@x.com"
    assert Account(id="1", email="a@x.com", full_name="  Ada ").display_name == "Ada"


def test_normalize_account_id_folds_uuid_spellings():
    aid = "3f2b8c1e-0d4a-4c55-9e0b-7a1d2c3b4e5f"
    assert normalize_account_id(aid.upper()) == aid
    assert normalize_account_id(f" {{{aid}}} ") == aid
    assert normalize_account_id(" Legacy-ID ") == "legacy-id"
    assert normalize_account_id(None) == ""
