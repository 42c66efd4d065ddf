from .base import Base
from .user import User, UserRole
from .campaign import Campaign, CampaignStatus, CampaignCategory
from .donation import Donation

__all__ = [
    "Base",
    "User",
    "UserRole",
    "Campaign",
    "CampaignStatus",
    "CampaignCategory",
    "Donation",
]
