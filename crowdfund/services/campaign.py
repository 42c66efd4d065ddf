from sqlalchemy import select, update, delete, func, case
from sqlalchemy.orm import Session
from typing import Optional, Dict, Any
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
import math
import uuid
import structlog

from crowdfund.core.errors import (
    AuthorizationError,
    CampaignClosed,
    NotFoundError,
    ValidationError,
)
from crowdfund.middleware.metrics import campaign_operations_total
from crowdfund.models import Campaign, CampaignCategory, CampaignStatus, Donation, User
from crowdfund.models.base import utcnow
from crowdfund.schemas.campaign import (
    CreateCampaignRequest,
    UpdateCampaignRequest,
    CampaignResponse,
    CampaignPage,
    Pagination,
)
from crowdfund.services.base import guarded

logger = structlog.get_logger(__name__)

TITLE_MIN_LENGTH = 5
TITLE_MAX_LENGTH = 100
DESCRIPTION_MIN_LENGTH = 50
MIN_GOAL_AMOUNT = Decimal("1")
# Largest value a Numeric(12, 2) column holds
MAX_AMOUNT = Decimal("9999999999.99")
CENT = Decimal("0.01")

DEFAULT_PAGE_SIZE = 12
MAX_PAGE_SIZE = 100
DEFAULT_SORT = "-createdAt"

SORT_COLUMNS = {
    "createdAt": Campaign.created_at,
    "goalAmount": Campaign.goal_amount,
    "currentAmount": Campaign.current_amount,
    "deadline": Campaign.deadline,
    "donorsCount": Campaign.donors_count,
    "title": Campaign.title,
}

CATEGORIES = {c.value for c in CampaignCategory}


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_campaign_id(campaign_id: str) -> str:
    try:
        return str(uuid.UUID(str(campaign_id)))
    except ValueError:
        raise ValidationError.for_field("id", "Invalid campaign ID")


def _validate_fields(fields: Dict[str, Any], now: Optional[datetime] = None) -> Dict[str, Any]:
    """Check and normalize the mutable campaign fields present in ``fields``"""
    now = now or datetime.now(timezone.utc)
    errors = []
    cleaned: Dict[str, Any] = {}

    if "title" in fields:
        title = (fields["title"] or "").strip()
        if not TITLE_MIN_LENGTH <= len(title) <= TITLE_MAX_LENGTH:
            errors.append({"field": "title", "message": "Title must be between 5 and 100 characters"})
        cleaned["title"] = title

    if "description" in fields:
        description = (fields["description"] or "").strip()
        if len(description) < DESCRIPTION_MIN_LENGTH:
            errors.append({"field": "description", "message": "Description must be at least 50 characters long"})
        cleaned["description"] = description

    if "category" in fields:
        if fields["category"] not in CATEGORIES:
            errors.append({"field": "category", "message": "Invalid category selected"})
        cleaned["category"] = fields["category"]

    if "goal_amount" in fields:
        try:
            goal = Decimal(fields["goal_amount"])
            valid_goal = goal.is_finite() and goal >= MIN_GOAL_AMOUNT
        except (InvalidOperation, TypeError):
            valid_goal = False
        if not valid_goal:
            errors.append({"field": "goalAmount", "message": "Goal amount must be at least $1"})
        elif goal > MAX_AMOUNT:
            errors.append({"field": "goalAmount", "message": "Goal amount cannot exceed $9,999,999,999.99"})
        else:
            cleaned["goal_amount"] = goal.quantize(CENT)

    if "deadline" in fields:
        deadline = fields["deadline"]
        if not isinstance(deadline, datetime):
            errors.append({"field": "deadline", "message": "Please provide a valid deadline date"})
        elif as_utc(deadline) <= now:
            errors.append({"field": "deadline", "message": "Deadline must be in the future"})
        else:
            cleaned["deadline"] = as_utc(deadline)

    if "image" in fields:
        cleaned["image"] = fields["image"] or ""

    if errors:
        raise ValidationError("Validation failed", errors=errors)
    return cleaned


def _ensure_can_modify(campaign: Campaign, caller: User, action: str):
    if campaign.creator_id != caller.id and not caller.is_admin:
        logger.warning("Campaign modification denied", campaign_id=campaign.id, user_id=caller.id, action=action)
        raise AuthorizationError(f"Not authorized to {action} this campaign")


class CampaignService:
    """Business logic for campaign operations"""

    @staticmethod
    async def create_campaign(db: Session, creator: User, campaign_data: CreateCampaignRequest) -> CampaignResponse:
        """Create a new active campaign owned by ``creator``"""
        fields = _validate_fields({
            "title": campaign_data.title,
            "description": campaign_data.description,
            "category": campaign_data.category,
            "goal_amount": campaign_data.goal_amount,
            "deadline": campaign_data.deadline,
            "image": campaign_data.image,
        })

        def db_create():
            db_campaign = Campaign(
                creator_id=creator.id,
                current_amount=Decimal("0"),
                donors_count=0,
                status=CampaignStatus.ACTIVE.value,
                **fields
            )
            db.add(db_campaign)
            db.commit()
            db.refresh(db_campaign)
            return CampaignResponse.model_validate(db_campaign)

        campaign = await guarded(db, db_create, "Failed to create campaign", creator_id=creator.id)
        campaign_operations_total.labels(operation="create", status="success").inc()
        logger.info("Campaign created successfully", campaign_id=campaign.id, title=campaign.title)
        return campaign

    @staticmethod
    async def get_campaign(db: Session, campaign_id: str) -> CampaignResponse:
        """Get a campaign by ID"""
        campaign_id = parse_campaign_id(campaign_id)

        def db_query():
            db_campaign = db.get(Campaign, campaign_id)
            return CampaignResponse.model_validate(db_campaign) if db_campaign else None

        campaign = await guarded(db, db_query, "Failed to get campaign", campaign_id=campaign_id)
        if campaign is None:
            logger.warning("Campaign not found", campaign_id=campaign_id)
            raise NotFoundError("Campaign not found")
        return campaign

    @staticmethod
    async def list_campaigns(
        db: Session,
        category: Optional[str] = None,
        status: Optional[str] = CampaignStatus.ACTIVE.value,
        search: Optional[str] = None,
        sort: str = DEFAULT_SORT,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE
    ) -> CampaignPage:
        """Filtered, sorted, offset-paginated campaign listing"""
        if page < 1:
            raise ValidationError.for_field("page", "Page must be at least 1")
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValidationError.for_field("limit", "Limit must be between 1 and 100")

        descending = sort.startswith("-")
        sort_key = sort.lstrip("-") or "createdAt"
        if sort_key not in SORT_COLUMNS:
            raise ValidationError.for_field("sort", f"Cannot sort by '{sort_key}'")
        column = SORT_COLUMNS[sort_key]
        order = column.desc() if descending else column.asc()

        conditions = []
        if category:
            conditions.append(Campaign.category == category)
        if status and status != "all":
            if status not in {s.value for s in CampaignStatus}:
                raise ValidationError.for_field("status", "Invalid status filter")
            conditions.append(Campaign.status == status)
        if search:
            needle = search.strip().lower()
            conditions.append(
                func.lower(Campaign.title).contains(needle, autoescape=True)
                | func.lower(Campaign.description).contains(needle, autoescape=True)
            )

        skip = (page - 1) * limit

        def db_query():
            total = db.execute(
                select(func.count()).select_from(Campaign).where(*conditions)
            ).scalar_one()
            rows = db.execute(
                select(Campaign).where(*conditions).order_by(order, Campaign.id).offset(skip).limit(limit)
            ).scalars().all()
            return total, [CampaignResponse.model_validate(c) for c in rows]

        total, campaigns = await guarded(db, db_query, "Failed to get campaigns")

        logger.info("Campaigns retrieved successfully", count=len(campaigns), total=total, page=page)
        return CampaignPage(
            campaigns=campaigns,
            pagination=Pagination(
                current_page=page,
                total_pages=math.ceil(total / limit),
                total_campaigns=total,
                has_next=skip + len(campaigns) < total,
                has_prev=page > 1,
            ),
        )

    @staticmethod
    async def update_campaign(
        db: Session,
        campaign_id: str,
        caller: User,
        campaign_data: UpdateCampaignRequest
    ) -> CampaignResponse:
        """Update the mutable fields of a campaign (creator or admin only)"""
        campaign_id = parse_campaign_id(campaign_id)
        supplied = {k: v for k, v in campaign_data.model_dump(exclude_unset=True).items() if v is not None}

        def db_update():
            db_campaign = db.get(Campaign, campaign_id)
            if not db_campaign:
                raise NotFoundError("Campaign not found")
            _ensure_can_modify(db_campaign, caller, "update")

            for field, value in _validate_fields(supplied).items():
                setattr(db_campaign, field, value)

            db.commit()
            db.refresh(db_campaign)
            return CampaignResponse.model_validate(db_campaign)

        campaign = await guarded(db, db_update, "Failed to update campaign", campaign_id=campaign_id)
        campaign_operations_total.labels(operation="update", status="success").inc()
        logger.info("Campaign updated successfully", campaign_id=campaign_id, fields=sorted(supplied))
        return campaign

    @staticmethod
    async def delete_campaign(db: Session, campaign_id: str, caller: User) -> None:
        """Delete a campaign and all of its donations in one transaction"""
        campaign_id = parse_campaign_id(campaign_id)

        def db_delete():
            db_campaign = db.get(Campaign, campaign_id)
            if not db_campaign:
                raise NotFoundError("Campaign not found")
            _ensure_can_modify(db_campaign, caller, "delete")

            removed = db.execute(
                delete(Donation).where(Donation.campaign_id == campaign_id)
                .execution_options(synchronize_session=False)
            ).rowcount
            db.delete(db_campaign)
            db.commit()
            return removed

        removed = await guarded(db, db_delete, "Failed to delete campaign", campaign_id=campaign_id)
        campaign_operations_total.labels(operation="delete", status="success").inc()
        logger.info("Campaign deleted successfully", campaign_id=campaign_id, donations_removed=removed)

    @staticmethod
    def record_contribution(db: Session, campaign_id: str, amount: Decimal) -> Campaign:
        """
        Apply one contribution to a campaign's running totals.

        Runs inside the caller's transaction and does not commit. The
        read-modify-write is a single guarded UPDATE, so concurrent
        contributions to the same campaign are serialized by the store and
        none are lost. Reaching the goal moves the campaign to ``completed``.

        Raises:
            NotFoundError: no such campaign
            CampaignClosed: the campaign is no longer active
        """
        result = db.execute(
            update(Campaign)
            .where(Campaign.id == campaign_id, Campaign.status == CampaignStatus.ACTIVE.value)
            .values(
                current_amount=Campaign.current_amount + amount,
                donors_count=Campaign.donors_count + 1,
                status=case(
                    (Campaign.current_amount + amount >= Campaign.goal_amount, CampaignStatus.COMPLETED.value),
                    else_=Campaign.status,
                ),
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )

        if result.rowcount == 0:
            status = db.execute(select(Campaign.status).where(Campaign.id == campaign_id)).scalar_one_or_none()
            if status is None:
                raise NotFoundError("Campaign not found")
            raise CampaignClosed()

        campaign = db.execute(
            select(Campaign).where(Campaign.id == campaign_id).execution_options(populate_existing=True)
        ).scalar_one()

        if campaign.status == CampaignStatus.COMPLETED.value:
            logger.info("Campaign goal reached", campaign_id=campaign_id, raised=str(campaign.current_amount))
        return campaign
