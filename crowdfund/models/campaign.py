from decimal import Decimal
from sqlalchemy import Column, Integer, String, Text, DateTime, Numeric, ForeignKey
from sqlalchemy.orm import relationship
import enum

from .base import Base, generate_id, utcnow


class CampaignStatus(str, enum.Enum):
    """Campaign lifecycle: active -> completed (goal reached) or cancelled"""
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class CampaignCategory(str, enum.Enum):
    TECHNOLOGY = "Technology"
    EDUCATION = "Education"
    HEALTHCARE = "Healthcare"
    ART = "Art"
    ENVIRONMENT = "Environment"
    BUSINESS = "Business"
    SOCIAL = "Social"
    OTHER = "Other"


class Campaign(Base):
    """Campaign model for fundraising campaigns"""
    __tablename__ = "campaigns"

    id = Column(String(36), primary_key=True, default=generate_id)
    title = Column(String(100), nullable=False, index=True)
    description = Column(Text, nullable=False)
    category = Column(String(32), nullable=False, index=True)
    goal_amount = Column(Numeric(12, 2), nullable=False)
    current_amount = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    image = Column(String(500), nullable=False, default="")
    creator_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    deadline = Column(DateTime(timezone=True), nullable=False)
    status = Column(String(20), nullable=False, default=CampaignStatus.ACTIVE.value, index=True)
    donors_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    creator = relationship("User", lazy="joined")

    @property
    def progress(self) -> float:
        """Percentage of goal reached, clamped to [0, 100]"""
        goal = Decimal(self.goal_amount or 0)
        if goal <= 0:
            return 0.0
        ratio = min(Decimal(self.current_amount or 0) / goal, Decimal(1))
        return float(round(max(ratio, Decimal(0)) * 100, 2))

    def __repr__(self):
        return f"<Campaign(id={self.id}, title='{self.title}', status='{self.status}')>"
