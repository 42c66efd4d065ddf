from .user import UserService
from .campaign import CampaignService
from .donation import DonationService

__all__ = ["UserService", "CampaignService", "DonationService"]
