from sqlalchemy import Column, String, Text, DateTime, Numeric, Boolean, ForeignKey
from sqlalchemy.orm import relationship

from .base import Base, generate_id, utcnow


class Donation(Base):
    """A single contribution; immutable once written"""
    __tablename__ = "donations"

    id = Column(String(36), primary_key=True, default=generate_id)
    amount = Column(Numeric(12, 2), nullable=False)
    donor_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    campaign_id = Column(String(36), ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False, index=True)
    message = Column(Text, nullable=False, default="")
    anonymous = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    donor = relationship("User", lazy="joined")
    campaign = relationship("Campaign", lazy="joined")

    def __repr__(self):
        return f"<Donation(id={self.id}, campaign_id={self.campaign_id}, amount={self.amount})>"
