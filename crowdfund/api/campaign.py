from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional
import structlog

from crowdfund.api.deps import get_current_user
from crowdfund.database import get_db
from crowdfund.models import User
from crowdfund.schemas import (
    ApiResponse,
    CreateCampaignRequest,
    UpdateCampaignRequest,
    CampaignEnvelope,
    CampaignListResponse,
    CampaignDetailResponse,
)
from crowdfund.services import CampaignService, DonationService

router = APIRouter(prefix="/campaigns", tags=["campaigns"])
logger = structlog.get_logger(__name__)

RECENT_DONATIONS_LIMIT = 10


@router.post("", response_model=CampaignEnvelope, status_code=201)
async def create_campaign(
    campaign_data: CreateCampaignRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Create a new campaign owned by the current user"""
    campaign = await CampaignService.create_campaign(db=db, creator=user, campaign_data=campaign_data)
    return CampaignEnvelope(message="Campaign created successfully", campaign=campaign)


@router.get("", response_model=CampaignListResponse)
async def get_all_campaigns(
    page: int = Query(1, description="Page number, starting at 1"),
    limit: int = Query(12, description="Number of campaigns per page (1-100)"),
    category: Optional[str] = Query(None, description="Filter by category"),
    status: Optional[str] = Query("active", description="Filter by status; 'all' disables the filter"),
    search: Optional[str] = Query(None, description="Case-insensitive match on title or description"),
    sort: str = Query("-createdAt", description="Sort key, prefix with '-' for descending"),
    db: Session = Depends(get_db)
):
    """List campaigns with filters, sorting and pagination"""
    result = await CampaignService.list_campaigns(
        db=db,
        category=category,
        status=status,
        search=search,
        sort=sort,
        page=page,
        limit=limit
    )
    return CampaignListResponse(campaigns=result.campaigns, pagination=result.pagination)


@router.get("/{campaign_id}", response_model=CampaignDetailResponse)
async def get_campaign(
    campaign_id: str,
    db: Session = Depends(get_db)
):
    """Get a campaign with its most recent donations"""
    campaign = await CampaignService.get_campaign(db=db, campaign_id=campaign_id)
    recent = await DonationService.list_for_campaign(db=db, campaign_id=campaign.id, limit=RECENT_DONATIONS_LIMIT)
    return CampaignDetailResponse(campaign=campaign, recent_donations=recent)


@router.put("/{campaign_id}", response_model=CampaignEnvelope)
async def update_campaign(
    campaign_id: str,
    campaign_data: UpdateCampaignRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Update an existing campaign (creator or admin)"""
    campaign = await CampaignService.update_campaign(
        db=db, campaign_id=campaign_id, caller=user, campaign_data=campaign_data
    )
    return CampaignEnvelope(message="Campaign updated successfully", campaign=campaign)


@router.delete("/{campaign_id}", response_model=ApiResponse)
async def delete_campaign(
    campaign_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Delete a campaign and its donations (creator or admin)"""
    await CampaignService.delete_campaign(db=db, campaign_id=campaign_id, caller=user)
    return ApiResponse(message="Campaign deleted successfully")
