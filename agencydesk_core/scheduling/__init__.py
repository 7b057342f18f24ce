from agencydesk_core.scheduling.engine import (
    ScheduleOutOfRange,
    humanize_content_type,
    month_start,
    plan_scope,
    summarize_progress,
)
from agencydesk_core.scheduling.schema import (
    DUE_LEAD_DAYS,
    MAX_SCOPE_QUANTITY,
    POSTING_INTERVAL_DAYS,
    ContentType,
    PlannedTask,
    ScopeItem,
    ScopeProgress,
)

__all__ = [
    "DUE_LEAD_DAYS",
    "MAX_SCOPE_QUANTITY",
    "POSTING_INTERVAL_DAYS",
    "ContentType",
    "PlannedTask",
    "ScheduleOutOfRange",
    "ScopeItem",
    "ScopeProgress",
    "humanize_content_type",
    "month_start",
    "plan_scope",
    "summarize_progress",
]
