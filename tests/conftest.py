"""
Shared fixtures: a throwaway SQLite database per test, fast bcrypt, and
factories for users and campaigns
"""
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from crowdfund.core.circuit_breaker import db_circuit_breaker
from crowdfund.core.config import Settings
from crowdfund.core.security import PasswordHasher, TokenIssuer
from crowdfund.database import Database
from crowdfund.main import create_app
from crowdfund.models import Campaign, CampaignStatus, User, UserRole

LONG_DESCRIPTION = (
    "A community project that needs your help to get off the ground and "
    "reach the people who depend on it."
)


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture(autouse=True)
def reset_circuit_breaker():
    db_circuit_breaker.reset()
    yield
    db_circuit_breaker.reset()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        database_url=f"sqlite:///{tmp_path / 'test.db'}",
        jwt_secret="test-secret",
        bcrypt_rounds=4,
    )


@pytest.fixture
def database(settings):
    db = Database(settings.database_url)
    db.init_db(max_retries=1)
    yield db
    db.close()


@pytest.fixture
def db_session(database):
    session = database.session()
    yield session
    session.close()


@pytest.fixture
def hasher():
    return PasswordHasher(rounds=4)


@pytest.fixture
def issuer(settings):
    return TokenIssuer.from_settings(settings)


@pytest.fixture
def app(settings):
    application = create_app(settings)
    # ASGITransport does not run startup handlers
    application.state.database.init_db(max_retries=1)
    yield application
    application.state.database.close()


@pytest_asyncio.fixture
async def client(app):
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac


@pytest.fixture
def make_user(db_session, hasher):
    """Insert a user directly; returns the persisted User"""
    counter = {"n": 0}

    def _make(name="Test User", email=None, password="password123", role=UserRole.USER.value):
        counter["n"] += 1
        user = User(
            name=name,
            email=email or f"user{counter['n']}@example.com",
            hashed_password=hasher.hash(password),
            role=role,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make


@pytest.fixture
def make_campaign(db_session):
    """Insert a campaign directly; returns the persisted Campaign"""
    def _make(creator, title="Clean water for all", goal=Decimal("100"), current=Decimal("0"),
              status=CampaignStatus.ACTIVE.value, category="Environment", donors_count=0,
              deadline=None, created_at=None):
        campaign = Campaign(
            title=title,
            description=LONG_DESCRIPTION,
            category=category,
            goal_amount=goal,
            current_amount=current,
            creator_id=creator.id,
            deadline=deadline or datetime.now(timezone.utc) + timedelta(days=30),
            status=status,
            donors_count=donors_count,
        )
        if created_at is not None:
            campaign.created_at = created_at
        db_session.add(campaign)
        db_session.commit()
        db_session.refresh(campaign)
        return campaign

    return _make


@pytest.fixture
def creator(make_user):
    return make_user(name="Campaign Creator", email="creator@example.com")


@pytest.fixture
def donor(make_user):
    return make_user(name="Generous Donor", email="donor@example.com")


@pytest.fixture
def admin(make_user):
    return make_user(name="Site Admin", email="admin@example.com", role=UserRole.ADMIN.value)
