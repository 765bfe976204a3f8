"""API-layer dependency functions.

Re-exports the dependency factories from ``app.dependencies`` so that
endpoint modules only need to import from ``app.api.deps``.
"""

from app.dependencies import (
    # Repository factories
    get_organization_repo,
    # Dispatchers
    get_task_notification_scheduler,
    get_lead_follow_up_dispatcher,
)

__all__ = [
    "get_organization_repo",
    "get_task_notification_scheduler",
    "get_lead_follow_up_dispatcher",
]
