from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
import structlog

from crowdfund.api.deps import get_current_user
from crowdfund.database import get_db
from crowdfund.models import User
from crowdfund.schemas import (
    CreateDonationRequest,
    DonationEnvelope,
    DonationListResponse,
    MyDonationsResponse,
)
from crowdfund.services import DonationService

router = APIRouter(prefix="/donations", tags=["donations"])
logger = structlog.get_logger(__name__)


@router.post("", response_model=DonationEnvelope, status_code=201)
async def create_donation(
    donation_data: CreateDonationRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Donate to an active campaign"""
    donation = await DonationService.donate(db=db, donor=user, donation_data=donation_data)
    return DonationEnvelope(message="Donation successful", donation=donation)


@router.get("/my-donations", response_model=MyDonationsResponse)
async def get_my_donations(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """The current user's donation history"""
    history = await DonationService.list_for_donor(db=db, donor=user)
    return MyDonationsResponse(donations=history.donations, total_donated=history.total_donated)


@router.get("/campaign/{campaign_id}", response_model=DonationListResponse)
async def get_campaign_donations(
    campaign_id: str,
    limit: int = Query(50, description="Number of donations to return (1-100)"),
    db: Session = Depends(get_db)
):
    """Public donation listing for a campaign, newest first"""
    donations = await DonationService.list_for_campaign(db=db, campaign_id=campaign_id, limit=limit)
    return DonationListResponse(donations=donations, count=len(donations))
