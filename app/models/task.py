from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func, expression

from app.models.base import Base


class Task(Base):
    __tablename__ = "tasks"
    task_id = Column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    organization_id = Column(
        UUID(as_uuid=True),
        ForeignKey("organizations.organization_id", ondelete="CASCADE"),
        nullable=False,
    )
    title = Column(String(255), nullable=False)
    due_date = Column(DateTime(timezone=True))
    is_completed = Column(Boolean, nullable=False, server_default=expression.false())
    # Soft delete; reminder rows reference tasks and are kept as history
    deleted_at = Column(DateTime(timezone=True))
    assigned_to_id = Column(
        UUID(as_uuid=True), ForeignKey("users.user_id", ondelete="SET NULL")
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    assigned_to = relationship("User")
    notifications = relationship("TaskNotification", back_populates="task")

    __table_args__ = (
        Index("idx_tasks_assigned_to", "assigned_to_id"),
    )
