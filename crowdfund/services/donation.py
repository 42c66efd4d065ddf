from sqlalchemy import select
from sqlalchemy.orm import Session
from typing import List
from decimal import Decimal
import structlog

from crowdfund.core.errors import (
    CampaignClosed,
    InvalidAmount,
    NotFoundError,
    SelfDonationForbidden,
    ValidationError,
)
from crowdfund.middleware.metrics import donations_recorded_total, donation_amount_total
from crowdfund.models import Campaign, CampaignStatus, Donation, User
from crowdfund.schemas.auth import UserSummary
from crowdfund.schemas.donation import (
    CreateDonationRequest,
    DonationResponse,
    DonorDonationResponse,
    DonationHistory,
)
from crowdfund.services.base import guarded
from crowdfund.services.campaign import CampaignService, MAX_AMOUNT

logger = structlog.get_logger(__name__)

MIN_DONATION_AMOUNT = Decimal("1")
MAX_MESSAGE_LENGTH = 500
DEFAULT_CAMPAIGN_DONATIONS_LIMIT = 50
MAX_CAMPAIGN_DONATIONS_LIMIT = 100
CENT = Decimal("0.01")


def to_public_response(donation: Donation) -> DonationResponse:
    """Donation as shown to anyone; anonymous donors are hidden"""
    return DonationResponse(
        id=donation.id,
        amount=donation.amount,
        donor=None if donation.anonymous else UserSummary.model_validate(donation.donor),
        campaign_id=donation.campaign_id,
        message=donation.message,
        anonymous=donation.anonymous,
        created_at=donation.created_at,
    )


class DonationService:
    """Business logic for donation operations"""

    @staticmethod
    async def donate(db: Session, donor: User, donation_data: CreateDonationRequest) -> DonationResponse:
        """
        Record a donation and apply it to the campaign totals.

        Preconditions are checked in order: amount, campaign exists, campaign
        active, donor is not the creator. The donation row and the campaign
        update commit together or not at all.
        """
        amount = donation_data.amount
        if not amount.is_finite() or amount < MIN_DONATION_AMOUNT:
            raise InvalidAmount("Amount must be at least $1")
        if amount > MAX_AMOUNT:
            raise InvalidAmount("Amount cannot exceed $9,999,999,999.99")
        amount = amount.quantize(CENT)

        message = donation_data.message or ""
        if len(message) > MAX_MESSAGE_LENGTH:
            raise ValidationError.for_field("message", "Message cannot exceed 500 characters")

        campaign_id = donation_data.campaign

        def db_donate():
            campaign = db.get(Campaign, campaign_id)
            if not campaign:
                raise NotFoundError("Campaign not found")
            if campaign.status != CampaignStatus.ACTIVE.value:
                raise CampaignClosed()
            if campaign.creator_id == donor.id:
                raise SelfDonationForbidden()

            db_donation = Donation(
                amount=amount,
                donor_id=donor.id,
                campaign_id=campaign_id,
                message=message,
                anonymous=donation_data.anonymous,
            )
            db.add(db_donation)
            db.flush()

            # Guarded against a concurrent close; raising here rolls the insert back
            CampaignService.record_contribution(db, campaign_id, amount)

            db.commit()
            db.refresh(db_donation)
            return DonationResponse(
                id=db_donation.id,
                amount=db_donation.amount,
                donor=UserSummary.model_validate(donor),
                campaign_id=db_donation.campaign_id,
                message=db_donation.message,
                anonymous=db_donation.anonymous,
                created_at=db_donation.created_at,
            )

        donation = await guarded(
            db, db_donate, "Failed to create donation",
            donor_id=donor.id, campaign_id=campaign_id
        )

        donations_recorded_total.inc()
        donation_amount_total.inc(float(amount))
        logger.info(
            "Donation created successfully",
            donation_id=donation.id,
            donor_id=donor.id,
            campaign_id=campaign_id,
            amount=str(amount)
        )
        return donation

    @staticmethod
    async def list_for_campaign(
        db: Session,
        campaign_id: str,
        limit: int = DEFAULT_CAMPAIGN_DONATIONS_LIMIT
    ) -> List[DonationResponse]:
        """Donations for a campaign, newest first"""
        if not 1 <= limit <= MAX_CAMPAIGN_DONATIONS_LIMIT:
            raise ValidationError.for_field("limit", "Limit must be between 1 and 100")

        def db_query():
            rows = db.execute(
                select(Donation)
                .where(Donation.campaign_id == campaign_id)
                .order_by(Donation.created_at.desc(), Donation.id.desc())
                .limit(limit)
            ).scalars().all()
            return [to_public_response(d) for d in rows]

        donations = await guarded(db, db_query, "Failed to get donations", campaign_id=campaign_id)
        logger.info("Donations retrieved successfully", campaign_id=campaign_id, count=len(donations))
        return donations

    @staticmethod
    async def list_for_donor(db: Session, donor: User) -> DonationHistory:
        """A donor's full donation history, newest first, with the total given"""
        def db_query():
            rows = db.execute(
                select(Donation)
                .where(Donation.donor_id == donor.id)
                .order_by(Donation.created_at.desc(), Donation.id.desc())
            ).scalars().all()
            return [DonorDonationResponse.model_validate(d) for d in rows]

        donations = await guarded(db, db_query, "Failed to get donations", donor_id=donor.id)
        total = sum((Decimal(str(d.amount)) for d in donations), Decimal("0"))

        logger.info("Donation history retrieved", donor_id=donor.id, count=len(donations))
        return DonationHistory(donations=donations, total_donated=float(total))
