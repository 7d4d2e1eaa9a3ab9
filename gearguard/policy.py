"""
Role policy table.

Every API operation is looked up once per call as (role, operation) and
yields whether it is allowed plus the Mongo filter that scopes what the
caller may see. Nothing outside this module branches on role names.
"""
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Tuple

from .errors import Forbidden
from .models import ROLES, Permissions, Request, User

ScopeFn = Callable[[User], dict]

EVERYONE = ROLES
ADMIN = ("admin",)
STAFF = ("admin", "manager")
FIELD_CREW = ("manager", "technician")


def own_requests(user: User) -> dict:
    return {"created_by": user.id}


def team_queue(user: User) -> dict:
    """Work assigned to the technician plus unclaimed new work for their team."""
    if user.team_id is None:
        return {"assigned_to": user.id}
    return {"$or": [
        {"assigned_to": user.id},
        {"status": "new", "team_id": user.team_id},
    ]}


# operation -> roles allowed to perform it
GATES: Dict[str, Tuple[str, ...]] = {
    "list_requests": EVERYONE,
    "view_request": EVERYONE,
    "create_request": EVERYONE,
    "update_request": EVERYONE,
    "assign_request": FIELD_CREW,
    "delete_request": STAFF,
    "view_equipment": EVERYONE,
    "manage_equipment": ADMIN,
    "view_teams": EVERYONE,
    "manage_teams": ADMIN,
    "list_users": ADMIN,
    "view_user": EVERYONE,
    "manage_users": ADMIN,
    "list_technicians": EVERYONE,
    "view_dashboard": EVERYONE,
    # advisory only: surfaced to clients, not enforced by the update path
    "edit_request_details": STAFF,
    "update_request_status": FIELD_CREW,
}

SCOPES: Dict[Tuple[str, str], ScopeFn] = {
    ("employee", "list_requests"): own_requests,
    ("employee", "view_request"): own_requests,
    ("technician", "list_requests"): team_queue,
    ("technician", "view_request"): team_queue,
}


@dataclass(frozen=True)
class Rule:
    allowed: bool
    scope: Optional[ScopeFn] = None


DENY = Rule(allowed=False)

POLICY: Dict[Tuple[str, str], Rule] = {
    (role, operation): Rule(role in roles, SCOPES.get((role, operation)))
    for operation, roles in GATES.items()
    for role in ROLES
}


@dataclass(frozen=True)
class Access:
    """Outcome of one policy evaluation: who is acting and what they may see."""

    user: User
    operation: str
    filter: dict = field(default_factory=dict)


def evaluate(user: User, operation: str) -> Tuple[bool, dict]:
    rule = POLICY.get((user.role, operation), DENY)
    scope = rule.scope(user) if rule.scope else {}
    return rule.allowed, scope


def authorize(user: User, operation: str) -> Access:
    allowed, scope = evaluate(user, operation)
    if not allowed:
        raise Forbidden(f"Role '{user.role}' is not allowed to {operation.replace('_', ' ')}")
    return Access(user=user, operation=operation, filter=scope)


def is_allowed(user: User, operation: str) -> bool:
    return POLICY.get((user.role, operation), DENY).allowed


def can_edit(user: User, request: Request) -> bool:
    return is_allowed(user, "edit_request_details") or request.created_by == user.id


def can_assign(user: User) -> bool:
    return is_allowed(user, "assign_request")


def can_update_status(user: User) -> bool:
    return is_allowed(user, "update_request_status")


def permissions(user: User, request: Request) -> Permissions:
    return Permissions(
        can_edit=can_edit(user, request),
        can_assign=can_assign(user),
        can_update_status=can_update_status(user),
    )
