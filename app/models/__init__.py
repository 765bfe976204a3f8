from app.models.base import Base
from app.models.organization import Organization
from app.models.user import User
from app.models.task import Task
from app.models.task_notification import TaskNotification
from app.models.lead import Lead
from app.models.lead_settings import LeadSettings

# Import event listeners to register them
from app.models import listeners  # noqa: F401

__all__ = [
    "Base",
    "Organization",
    "User",
    "Task",
    "TaskNotification",
    "Lead",
    "LeadSettings",
]
