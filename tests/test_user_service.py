"""
Credential store tests against a real SQLite database
"""
from decimal import Decimal

import pytest
from sqlalchemy import select

from crowdfund.core.errors import AuthenticationError, DuplicateEmail, NotFoundError, ValidationError
from crowdfund.models import Donation, User
from crowdfund.schemas import RegisterRequest
from crowdfund.services import UserService


def register_request(**overrides):
    data = {"name": "Ada Lovelace", "email": "ada@example.com", "password": "analytical"}
    data.update(overrides)
    return RegisterRequest(**data)


class TestRegister:

    @pytest.mark.asyncio
    async def test_register_stores_only_hash(self, db_session, hasher):
        user = await UserService.register(db_session, hasher, register_request())

        assert user.id
        assert user.role == "user"
        assert user.hashed_password != "analytical"
        assert hasher.verify("analytical", user.hashed_password)

    @pytest.mark.asyncio
    async def test_register_lowercases_email(self, db_session, hasher):
        user = await UserService.register(db_session, hasher, register_request(email="Ada@Example.COM"))
        assert user.email == "ada@example.com"

    @pytest.mark.asyncio
    async def test_duplicate_email_case_insensitive(self, db_session, hasher):
        await UserService.register(db_session, hasher, register_request())

        with pytest.raises(DuplicateEmail) as exc_info:
            await UserService.register(db_session, hasher, register_request(email="ADA@example.com"))

        assert exc_info.value.status_code == 400
        assert exc_info.value.message == "User with this email already exists"
        count = db_session.execute(select(User)).scalars().all()
        assert len(count) == 1

    @pytest.mark.asyncio
    async def test_short_name_and_password(self, db_session, hasher):
        with pytest.raises(ValidationError) as exc_info:
            await UserService.register(db_session, hasher, register_request(name=" A ", password="12345"))

        fields = {e["field"] for e in exc_info.value.errors}
        assert fields == {"name", "password"}


class TestVerify:

    @pytest.mark.asyncio
    async def test_valid_credentials(self, db_session, hasher, make_user):
        created = make_user(email="grace@example.com", password="hopper42")
        user = await UserService.verify(db_session, hasher, "Grace@example.com", "hopper42")
        assert user.id == created.id

    @pytest.mark.asyncio
    async def test_unknown_email_and_wrong_password_fail_alike(self, db_session, hasher, make_user):
        make_user(email="grace@example.com", password="hopper42")

        with pytest.raises(AuthenticationError) as wrong_password:
            await UserService.verify(db_session, hasher, "grace@example.com", "nope")
        with pytest.raises(AuthenticationError) as unknown_email:
            await UserService.verify(db_session, hasher, "nobody@example.com", "hopper42")

        assert type(wrong_password.value) is type(unknown_email.value)
        assert wrong_password.value.message == unknown_email.value.message == "Invalid email or password"


class TestAccount:

    @pytest.mark.asyncio
    async def test_get_user_not_found(self, db_session):
        with pytest.raises(NotFoundError):
            await UserService.get_user(db_session, "missing")

    @pytest.mark.asyncio
    async def test_change_password(self, db_session, hasher, make_user):
        user = make_user(password="old-password")
        await UserService.change_password(db_session, hasher, user, "old-password", "new-password")

        reloaded = await UserService.verify(db_session, hasher, user.email, "new-password")
        assert reloaded.id == user.id

    @pytest.mark.asyncio
    async def test_change_password_wrong_current(self, db_session, hasher, make_user):
        user = make_user(password="old-password")
        with pytest.raises(AuthenticationError) as exc_info:
            await UserService.change_password(db_session, hasher, user, "guess", "new-password")
        assert exc_info.value.message == "Current password is incorrect"

    @pytest.mark.asyncio
    async def test_change_password_rules(self, db_session, hasher, make_user):
        user = make_user(password="old-password")
        with pytest.raises(ValidationError):
            await UserService.change_password(db_session, hasher, user, "old-password", "short")
        with pytest.raises(ValidationError) as exc_info:
            await UserService.change_password(db_session, hasher, user, "old-password", "old-password")
        assert exc_info.value.message == "New password must be different from current password"

    @pytest.mark.asyncio
    async def test_list_users_newest_first(self, db_session, make_user):
        first = make_user()
        second = make_user()
        users = await UserService.list_users(db_session)
        assert {u.id for u in users} == {first.id, second.id}
        assert users[0].created_at >= users[1].created_at

    @pytest.mark.asyncio
    async def test_stats(self, db_session, creator, donor, make_campaign):
        campaign = make_campaign(creator, current=Decimal("60"), donors_count=2)
        make_campaign(creator, current=Decimal("15.50"), donors_count=1)
        db_session.add_all([
            Donation(amount=Decimal("60"), donor_id=donor.id, campaign_id=campaign.id),
            Donation(amount=Decimal("15.50"), donor_id=donor.id, campaign_id=campaign.id),
        ])
        db_session.commit()

        creator_stats = await UserService.get_stats(db_session, creator)
        donor_stats = await UserService.get_stats(db_session, donor)

        assert creator_stats.campaigns_created == 2
        assert creator_stats.total_raised == pytest.approx(75.5)
        assert creator_stats.donations_made == 0
        assert donor_stats.campaigns_created == 0
        assert donor_stats.donations_made == 2
        assert donor_stats.total_donated == pytest.approx(75.5)
