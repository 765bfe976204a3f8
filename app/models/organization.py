from sqlalchemy import Column, String, DateTime
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.models.base import Base


class Organization(Base):
    """Tenant account.

    Carries the sender identity for follow-up email and the tenant's own
    Twilio credentials; SMS is only attempted for organizations that have
    both ``twilio_account_sid`` and ``twilio_auth_token`` set.
    """

    __tablename__ = "organizations"
    organization_id = Column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    name = Column(String(255), nullable=False)
    email = Column(String(255))
    twilio_account_sid = Column(String(64))
    twilio_auth_token = Column(String(128))
    twilio_phone_number = Column(String(20))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    users = relationship("User", back_populates="organization")
    lead_settings = relationship(
        "LeadSettings", back_populates="organization", uselist=False
    )
