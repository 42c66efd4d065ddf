from pydantic import Field, ConfigDict
from datetime import datetime
from decimal import Decimal
from typing import Optional, List

from crowdfund.models.campaign import CampaignStatus
from .common import CamelModel, ApiResponse
from .auth import UserSummary


class CreateCampaignRequest(CamelModel):
    """Request schema for creating a campaign"""
    title: str = Field(..., description="Campaign title (5-100 characters)")
    description: str = Field(..., description="Campaign description (at least 50 characters)")
    category: str = Field(..., description="One of the fixed campaign categories")
    goal_amount: Decimal = Field(..., description="Funding goal (at least 1)")
    deadline: datetime = Field(..., description="Deadline, must be in the future")
    image: Optional[str] = Field(None, description="Image URL")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Solar panels for the village school",
                "description": "We are raising money to install solar panels so the school can keep its lights on all year.",
                "category": "Environment",
                "goalAmount": 5000,
                "deadline": "2030-06-01T00:00:00Z",
                "image": "https://example.com/solar.jpg"
            }
        }
    )


class UpdateCampaignRequest(CamelModel):
    """Request schema for updating a campaign; only these fields are mutable"""
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    goal_amount: Optional[Decimal] = None
    deadline: Optional[datetime] = None
    image: Optional[str] = None


class CampaignResponse(CamelModel):
    """Response schema for campaign data"""
    id: str
    title: str
    description: str
    category: str
    goal_amount: float
    current_amount: float
    image: str
    creator: UserSummary
    deadline: datetime
    status: CampaignStatus
    donors_count: int
    progress: float
    created_at: datetime
    updated_at: datetime


class CampaignSummary(CamelModel):
    """Campaign fields embedded in a donor's donation history"""
    id: str
    title: str
    image: str
    goal_amount: float
    current_amount: float


class Pagination(CamelModel):
    current_page: int
    total_pages: int
    total_campaigns: int
    has_next: bool
    has_prev: bool


class CampaignPage(CamelModel):
    """One page of campaigns as returned by the ledger"""
    campaigns: List[CampaignResponse]
    pagination: Pagination


class CampaignEnvelope(ApiResponse):
    campaign: CampaignResponse


class CampaignListResponse(ApiResponse):
    campaigns: List[CampaignResponse]
    pagination: Pagination
