from datetime import datetime, timezone

from sqlalchemy import event

from app.models.lead import Lead
from app.models.lead_settings import LeadSettings
from app.models.organization import Organization
from app.models.task import Task
from app.models.task_notification import TaskNotification


# Auto updated_at for ORM flushes; bulk UPDATE statements rely on the
# column-level ``onupdate`` instead.
@event.listens_for(Lead, "before_update")
@event.listens_for(Task, "before_update")
@event.listens_for(TaskNotification, "before_update")
@event.listens_for(Organization, "before_update")
@event.listens_for(LeadSettings, "before_update")
def update_timestamp(mapper, connection, target):
    target.updated_at = datetime.now(timezone.utc)
