"""Repository layer – all database access goes through here.

Repositories encapsulate SQLAlchemy queries so that the dispatchers and
the other services only contain business logic.
"""

from app.repositories.lead_repository import LeadRepository
from app.repositories.organization_repository import OrganizationRepository
from app.repositories.task_notification_repository import TaskNotificationRepository
from app.repositories.task_repository import TaskRepository
from app.repositories.user_repository import UserRepository

__all__ = [
    "LeadRepository",
    "OrganizationRepository",
    "TaskNotificationRepository",
    "TaskRepository",
    "UserRepository",
]
