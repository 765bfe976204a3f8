from sqlalchemy import Column, String, Text, DateTime, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.models.base import Base


class LeadSettings(Base):
    """Per-organization follow-up templates (``{name}``, ``{service}``, ``{company}``)."""

    __tablename__ = "lead_settings"
    organization_id = Column(
        UUID(as_uuid=True),
        ForeignKey("organizations.organization_id", ondelete="CASCADE"),
        primary_key=True,
    )
    email_subject = Column(String(255))
    email_template = Column(Text)
    sms_template = Column(Text)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    organization = relationship("Organization", back_populates="lead_settings")
