from sqlalchemy import (
    Column,
    String,
    Text,
    Integer,
    Boolean,
    DateTime,
    ForeignKey,
    CheckConstraint,
    Index,
    text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func, expression

from app.core.constants import NOTIFICATION_STATUS_CHECK_CLAUSE
from app.models.base import Base


class TaskNotification(Base):
    """One scheduled reminder for one task at one lead time.

    Lifecycle is ``pending`` → ``sent`` | ``failed`` | ``cancelled``; every
    outcome is terminal and rows are kept as audit history.  The
    ``is_*_sent`` flags record which channels actually delivered, so a
    partially delivered reminder is visible without asking the providers.
    """

    __tablename__ = "task_notifications"
    notification_id = Column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    task_id = Column(
        UUID(as_uuid=True),
        ForeignKey("tasks.task_id", ondelete="RESTRICT"),
        nullable=False,
    )
    user_id = Column(
        UUID(as_uuid=True),
        ForeignKey("users.user_id", ondelete="SET NULL"),
    )
    organization_id = Column(
        UUID(as_uuid=True),
        ForeignKey("organizations.organization_id", ondelete="CASCADE"),
        nullable=False,
    )
    notification_type = Column(String(20), nullable=False)
    hours_before_due = Column(Integer, nullable=False)
    subject = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    scheduled_for = Column(DateTime(timezone=True), nullable=False)
    status = Column(String(20), nullable=False, server_default="pending")
    is_email_sent = Column(Boolean, nullable=False, server_default=expression.false())
    is_sms_sent = Column(Boolean, nullable=False, server_default=expression.false())
    is_realtime_sent = Column(
        Boolean, nullable=False, server_default=expression.false()
    )
    failure_reason = Column(Text)
    sent_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    task = relationship("Task", back_populates="notifications")
    user = relationship("User")

    __table_args__ = (
        # At most one pending reminder per (task, lead time); cancelled and
        # sent rows are history and may repeat after a reschedule.
        Index(
            "uq_task_notifications_pending_offset",
            "task_id",
            "hours_before_due",
            unique=True,
            postgresql_where=text("status = 'pending'"),
        ),
        Index("idx_task_notifications_due", "status", "scheduled_for"),
        Index("idx_task_notifications_org", "organization_id"),
        CheckConstraint(NOTIFICATION_STATUS_CHECK_CLAUSE, name="ck_notification_status"),
        CheckConstraint("hours_before_due > 0", name="ck_hours_before_due_positive"),
    )
