from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class Role(StrEnum):
    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    ACCOUNT_MANAGER = "ACCOUNT_MANAGER"
    WRITER = "WRITER"
    DESIGNER = "DESIGNER"
    POST_SCHEDULER = "POST_SCHEDULER"
    CLIENT_VIEWER = "CLIENT_VIEWER"


class Action(StrEnum):
    USER_LIST = "user.list"
    USER_CREATE = "user.create"
    USER_UPDATE = "user.update"
    USER_CHANGE_ROLE = "user.change_role"
    USER_DELETE = "user.delete"
    BRAND_READ = "brand.read"
    BRAND_WRITE = "brand.write"
    BRAND_MEMBERS = "brand.members"
    CALENDAR_READ = "calendar.read"
    CALENDAR_WRITE = "calendar.write"
    CALENDAR_DELETE = "calendar.delete"
    TASK_READ = "task.read"
    TASK_CREATE = "task.create"
    TASK_UPDATE = "task.update"
    TASK_DELETE = "task.delete"
    COMMENT_CREATE = "comment.create"
    ATTACHMENT_CREATE = "attachment.create"
    ATTACHMENT_DELETE = "attachment.delete"
    ACTIVITY_READ = "activity.read"


ALL_ROLES: frozenset[Role] = frozenset(Role)
ADMIN_ROLES: frozenset[Role] = frozenset({Role.SUPER_ADMIN, Role.ADMIN})
CALENDAR_MANAGERS: frozenset[Role] = ADMIN_ROLES | {Role.ACCOUNT_MANAGER}
CONTRIBUTORS: frozenset[Role] = ALL_ROLES - {Role.CLIENT_VIEWER}

# Capabilities are enumerated per action; no privilege ordering between roles is implied.
CAPABILITIES: dict[Action, frozenset[Role]] = {
    Action.USER_LIST: ADMIN_ROLES,
    Action.USER_CREATE: frozenset({Role.SUPER_ADMIN}),
    Action.USER_UPDATE: ADMIN_ROLES,
    Action.USER_CHANGE_ROLE: frozenset({Role.SUPER_ADMIN}),
    Action.USER_DELETE: frozenset({Role.SUPER_ADMIN}),
    Action.BRAND_READ: ALL_ROLES,
    Action.BRAND_WRITE: ADMIN_ROLES,
    Action.BRAND_MEMBERS: ADMIN_ROLES,
    Action.CALENDAR_READ: ALL_ROLES,
    Action.CALENDAR_WRITE: CALENDAR_MANAGERS,
    Action.CALENDAR_DELETE: ADMIN_ROLES,
    Action.TASK_READ: ALL_ROLES,
    Action.TASK_CREATE: CALENDAR_MANAGERS,
    Action.TASK_UPDATE: CONTRIBUTORS,
    Action.TASK_DELETE: CALENDAR_MANAGERS,
    Action.COMMENT_CREATE: CONTRIBUTORS,
    Action.ATTACHMENT_CREATE: CONTRIBUTORS,
    Action.ATTACHMENT_DELETE: CONTRIBUTORS,
    Action.ACTIVITY_READ: ADMIN_ROLES,
}


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: str | None = None


ALLOW = Decision(allowed=True)


def has_unrestricted_visibility(role: Role) -> bool:
    return role in ADMIN_ROLES


def authorize(action: Action, role: Role) -> Decision:
    allowed_roles = CAPABILITIES.get(action, frozenset())
    if role in allowed_roles:
        return ALLOW
    return Decision(allowed=False, reason=f"role {role.value} may not perform {action.value}")


def authorize_user_update(actor_id: str, actor_role: Role, target_id: str, changes_role: bool) -> Decision:
    decision = authorize(Action.USER_UPDATE, actor_role)
    if not decision.allowed:
        return decision
    if not changes_role:
        return ALLOW
    if actor_id == target_id:
        return Decision(allowed=False, reason="cannot change your own role")
    return authorize(Action.USER_CHANGE_ROLE, actor_role)


def authorize_user_delete(actor_id: str, actor_role: Role, target_id: str) -> Decision:
    if actor_id == target_id:
        return Decision(allowed=False, reason="cannot delete your own account")
    return authorize(Action.USER_DELETE, actor_role)


def task_visible_to(
    actor_id: str,
    actor_role: Role,
    assigned_to_id: str | None,
    created_by_id: str | None,
    is_brand_member: bool,
) -> bool:
    """In-memory counterpart of the task row filter applied to list queries."""
    if has_unrestricted_visibility(actor_role):
        return True
    return actor_id in (assigned_to_id, created_by_id) or is_brand_member
