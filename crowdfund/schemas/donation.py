from pydantic import Field, ConfigDict
from datetime import datetime
from decimal import Decimal
from typing import Optional, List

from .common import CamelModel, ApiResponse
from .auth import UserSummary
from .campaign import CampaignResponse, CampaignSummary


class CreateDonationRequest(CamelModel):
    """Schema for creating a new donation"""
    campaign: str = Field(..., min_length=1, description="ID of the campaign to donate to")
    amount: Decimal = Field(..., description="Donation amount (at least 1)")
    message: Optional[str] = Field(None, description="Optional message, up to 500 characters")
    anonymous: bool = Field(default=False, description="Hide donor identity in public listings")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "campaign": "6f1c2f5e-8a43-4a55-9a55-1f1f3c2b9e10",
                "amount": 25,
                "message": "Good luck!",
                "anonymous": False
            }
        }
    )


class DonationResponse(CamelModel):
    """Schema for donation responses; donor is null for anonymous public listings"""
    id: str
    amount: float
    donor: Optional[UserSummary]
    campaign_id: str
    message: str
    anonymous: bool
    created_at: datetime


class DonorDonationResponse(DonationResponse):
    """A donation in the donor's own history, with the campaign it went to"""
    campaign: CampaignSummary


class DonationHistory(CamelModel):
    donations: List[DonorDonationResponse]
    total_donated: float


class DonationEnvelope(ApiResponse):
    donation: DonationResponse


class DonationListResponse(ApiResponse):
    donations: List[DonationResponse]
    count: int


class MyDonationsResponse(ApiResponse):
    donations: List[DonorDonationResponse]
    total_donated: float


class CampaignDetailResponse(ApiResponse):
    campaign: CampaignResponse
    recent_donations: List[DonationResponse]
