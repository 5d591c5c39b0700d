# farmreport/services/permissions.py
"""
Role / record-state permission matrix.

| Role                  | Read | Create | Update new | Update saved | Delete saved |
|-----------------------|------|--------|------------|--------------|--------------|
| ADMINISTRATEUR        |  ✓   |   ✓    |     ✓      |      ✓       |      ✓       |
| RESPONSABLE_TECHNIQUE |  ✓   |   ✓    |     ✓      |      ✓       |      ✓       |
| RESPONSABLE_FERME     |  ✓   |   ✓    |     ✓      |      ✗       |      ✗       |
| BACKOFFICE_EMPLOYER   |  ✓   |   ✗    |     ✗      |      ✗       |      ✗       |

Decisions are made per row or cell: a row that has been saved once is locked
for RESPONSABLE_FERME even while that role keeps adding new rows in the same
view. Nothing here reads session state; role and record state are arguments.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional


class Role(str, Enum):
    ADMINISTRATEUR = "ADMINISTRATEUR"
    RESPONSABLE_TECHNIQUE = "RESPONSABLE_TECHNIQUE"
    RESPONSABLE_FERME = "RESPONSABLE_FERME"
    BACKOFFICE_EMPLOYER = "BACKOFFICE_EMPLOYER"


class Action(str, Enum):
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"


FULL_ACCESS_ROLES = frozenset({Role.ADMINISTRATEUR, Role.RESPONSABLE_TECHNIQUE})
CREATOR_ROLES = FULL_ACCESS_ROLES | {Role.RESPONSABLE_FERME}
ALL_FARMS_ROLES = FULL_ACCESS_ROLES | {Role.BACKOFFICE_EMPLOYER}


def parse_role(value) -> Optional[Role]:
    """Accepts Role, 'responsable_ferme' or 'ROLE_RESPONSABLE_FERME'; None when unknown."""
    if value is None:
        return None
    if isinstance(value, Role):
        return value
    name = str(value).strip().upper()
    if name.startswith("ROLE_"):
        name = name[len("ROLE_"):]
    try:
        return Role(name)
    except ValueError:
        return None


def is_read_only(role) -> bool:
    parsed = parse_role(role)
    return parsed is None or parsed not in CREATOR_ROLES


def has_full_access(role) -> bool:
    return parse_role(role) in FULL_ACCESS_ROLES


def can_manage_users(role) -> bool:
    return has_full_access(role)


def is_allowed(role, action, is_persisted: bool) -> bool:
    parsed = parse_role(role)
    if parsed is None:
        return False
    action = Action(action)

    if action is Action.READ:
        return True
    if parsed in FULL_ACCESS_ROLES:
        return True
    if parsed not in CREATOR_ROLES:
        return False

    # RESPONSABLE_FERME: free on its own unsaved rows, locked once saved
    if action is Action.CREATE:
        return True
    return not is_persisted


@dataclass(frozen=True)
class PermissionDecision:
    create: bool
    read: bool
    update: bool
    delete: bool
    read_only: bool

    def to_dict(self) -> dict:
        return {
            "create": self.create,
            "read": self.read,
            "update": self.update,
            "delete": self.delete,
            "readOnly": self.read_only,
        }


def decide(role, is_persisted: bool) -> PermissionDecision:
    update = is_allowed(role, Action.UPDATE, is_persisted)
    return PermissionDecision(
        create=is_allowed(role, Action.CREATE, is_persisted),
        read=is_allowed(role, Action.READ, is_persisted),
        update=update,
        delete=is_allowed(role, Action.DELETE, is_persisted),
        read_only=is_read_only(role) or not update,
    )


def is_persisted_identity(row_id) -> bool:
    """
    Storage-assigned ids are integers (or numeric strings); client-generated
    ids are anything else, e.g. 'new-3' or a uuid.
    """
    if row_id is None or isinstance(row_id, bool):
        return False
    if isinstance(row_id, int):
        return row_id > 0
    text = str(row_id).strip()
    return text.isdigit() and int(text) > 0


@dataclass(frozen=True)
class RowDecision:
    row_id: str
    persisted: bool
    decision: PermissionDecision


def annotate_rows(role, row_ids: Iterable) -> List[RowDecision]:
    return [
        RowDecision(
            row_id=str(row_id),
            persisted=is_persisted_identity(row_id),
            decision=decide(role, is_persisted_identity(row_id)),
        )
        for row_id in row_ids
    ]


def can_access_all_farms(role) -> bool:
    return parse_role(role) in ALL_FARMS_ROLES


def can_access_farm(role, farm_id: Optional[int], assigned_farm_ids: Iterable[int] = ()) -> bool:
    parsed = parse_role(role)
    if parsed is None:
        return False
    if parsed in ALL_FARMS_ROLES:
        return True
    if farm_id is None:
        return False
    return int(farm_id) in {int(f) for f in assigned_farm_ids}


__all__ = [
    "Action",
    "PermissionDecision",
    "Role",
    "RowDecision",
    "annotate_rows",
    "can_access_all_farms",
    "can_access_farm",
    "can_manage_users",
    "decide",
    "has_full_access",
    "is_allowed",
    "is_persisted_identity",
    "is_read_only",
    "parse_role",
]
