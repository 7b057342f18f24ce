from agencydesk_core.policy.engine import (
    ADMIN_ROLES,
    CAPABILITIES,
    Action,
    Decision,
    Role,
    authorize,
    authorize_user_delete,
    authorize_user_update,
    has_unrestricted_visibility,
    task_visible_to,
)

__all__ = [
    "ADMIN_ROLES",
    "CAPABILITIES",
    "Action",
    "Decision",
    "Role",
    "authorize",
    "authorize_user_delete",
    "authorize_user_update",
    "has_unrestricted_visibility",
    "task_visible_to",
]
