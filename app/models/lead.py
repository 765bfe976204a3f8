from sqlalchemy import (
    Column,
    String,
    Text,
    Integer,
    Boolean,
    DateTime,
    CheckConstraint,
    ForeignKey,
    Index,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func, expression
from sqlalchemy import text

from app.models.base import Base


class Lead(Base):
    """Sales prospect with optional automatic follow-up.

    When ``automatic_follow_up_enabled`` is set, ``next_automatic_follow_up``
    holds the next due time and the follow-up dispatcher advances it by
    ``automatic_follow_up_interval`` days after every processed cycle.
    When disabled it is ``NULL``; a CHECK constraint keeps both columns
    consistent.
    """

    __tablename__ = "leads"
    lead_id = Column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    organization_id = Column(
        UUID(as_uuid=True),
        ForeignKey("organizations.organization_id", ondelete="CASCADE"),
        nullable=False,
    )
    name = Column(String(255), nullable=False)
    email = Column(String(255))
    phone = Column(String(20))
    service_description = Column(Text)
    automatic_follow_up_enabled = Column(
        Boolean, nullable=False, server_default=expression.false()
    )
    automatic_follow_up_interval = Column(
        Integer, nullable=False, server_default=text("1")
    )
    automatic_follow_up_template = Column(Text)
    next_automatic_follow_up = Column(DateTime(timezone=True))
    last_automatic_follow_up = Column(DateTime(timezone=True))
    automatic_follow_up_count = Column(Integer, nullable=False, server_default=text("0"))
    automatic_follow_up_email_count = Column(
        Integer, nullable=False, server_default=text("0")
    )
    automatic_follow_up_sms_count = Column(
        Integer, nullable=False, server_default=text("0")
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    organization = relationship("Organization")

    __table_args__ = (
        Index(
            "idx_leads_follow_up_due",
            "next_automatic_follow_up",
            postgresql_where=text("automatic_follow_up_enabled"),
        ),
        CheckConstraint(
            "automatic_follow_up_interval >= 1", name="ck_follow_up_interval_min"
        ),
        CheckConstraint(
            "(automatic_follow_up_enabled AND next_automatic_follow_up IS NOT NULL) "
            "OR (NOT automatic_follow_up_enabled AND next_automatic_follow_up IS NULL)",
            name="ck_follow_up_schedule_consistent",
        ),
    )
