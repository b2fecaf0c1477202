"""
Hierarchy resolver: which accounts may a caller see?

Rules (highest held role wins, never a union):
- admin: every account.
- director: own record plus accounts whose `managed_by` is the caller.
- coordinator: own record plus accounts whose `managed_by` is the caller.
- anyone else: own record only.

Depth is one level (direct reports only). Because the resolver
never follows `managed_by` transitively, cycles or dangling managers cannot
cause recursion; they simply add no visibility.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from .domain import Account, Caller, Role, SchoolClass, highest_hierarchy_role, sorted_labels
from .ports import DirectoryProtocol, RoleStoreProtocol


@dataclass
class AccountWithRoles:
    id: str
    email: str
    full_name: str | None
    managed_by: str | None
    roles: List[str]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "full_name": self.full_name,
            "managed_by": self.managed_by,
            "roles": list(self.roles),
        }


@dataclass
class ClassNode:
    id: str
    name: str
    students_count: int
    teacher_name: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "students_count": self.students_count,
            "teacher_name": self.teacher_name,
        }


@dataclass
class TeacherNode:
    id: str
    email: str
    full_name: str | None
    classes: List[ClassNode] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "full_name": self.full_name,
            "classes": [c.to_dict() for c in self.classes],
        }


@dataclass
class CoordinatorNode:
    id: str
    email: str
    full_name: str | None
    teachers: List[TeacherNode] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "full_name": self.full_name,
            "teachers": [t.to_dict() for t in self.teachers],
        }


class HierarchyResolver:
    def __init__(self, role_store: RoleStoreProtocol, directory: DirectoryProtocol) -> None:
        self._roles = role_store
        self._directory = directory

    def visible_accounts(self, caller: Caller) -> set[str]:
        top = highest_hierarchy_role(self._roles.get_roles(caller.id))
        if top is Role.ADMIN:
            return {a.id for a in self._directory.list_accounts()}
        visible = {caller.id}
        if top in (Role.DIRECTOR, Role.COORDINATOR):
            visible.update(a.id for a in self._directory.list_accounts_managed_by([caller.id]))
        return visible

    def visible_profiles(self, caller: Caller) -> List[AccountWithRoles]:
        """Visible accounts ordered by email, each with its current roles."""
        ids = self.visible_accounts(caller)
        accounts = self._directory.list_accounts_by_ids(sorted(ids))
        roles = self._roles.roles_for_accounts([a.id for a in accounts])
        return [
            AccountWithRoles(
                id=a.id,
                email=a.email,
                full_name=a.full_name,
                managed_by=a.managed_by,
                roles=sorted_labels(roles.get(a.id, set())),
            )
            for a in accounts
        ]

    def classes_for_accounts(self, account_ids: Sequence[str]) -> List[SchoolClass]:
        """Classes created, managed or taught by the given accounts.

        An empty id set yields no classes instead of an unfiltered query.
        """
        ids = [i for i in account_ids if i]
        if not ids:
            return []
        return self._directory.list_classes_for_staff(ids)

    def organization_tree(self) -> List[CoordinatorNode]:
        """Coordinators → teachers they manage → classes → student counts."""
        coordinator_ids = self._roles.account_ids_with_role(Role.COORDINATOR)
        if not coordinator_ids:
            return []
        coordinators = self._directory.list_accounts_by_ids(coordinator_ids)
        teachers = self._directory.list_accounts_managed_by(coordinator_ids)
        classes = self.classes_for_accounts([t.id for t in teachers])
        counts = self._directory.count_students_by_class([c.id for c in classes]) if classes else {}

        teachers_by_manager: Dict[str, List[Account]] = {}
        for t in teachers:
            teachers_by_manager.setdefault(t.managed_by or "", []).append(t)

        tree: List[CoordinatorNode] = []
        for coord in coordinators:
            node = CoordinatorNode(id=coord.id, email=coord.email, full_name=coord.full_name)
            for teacher in teachers_by_manager.get(coord.id, []):
                teacher_node = TeacherNode(id=teacher.id, email=teacher.email, full_name=teacher.full_name)
                for cls in classes:
                    if teacher.id in (cls.created_by, cls.managed_by, cls.teacher_id):
                        teacher_node.classes.append(
                            ClassNode(
                                id=cls.id,
                                name=cls.name,
                                students_count=int(counts.get(cls.id, 0)),
                                teacher_name=teacher.display_name,
                            )
                        )
                node.teachers.append(teacher_node)
            tree.append(node)
        return tree


__all__ = ["HierarchyResolver", "AccountWithRoles", "CoordinatorNode", "TeacherNode", "ClassNode"]
