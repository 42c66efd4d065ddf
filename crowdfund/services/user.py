"""
Credential store: registration, login and account queries
"""
import asyncio
from typing import List
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
import structlog

from crowdfund.core.errors import (
    AuthenticationError,
    DuplicateEmail,
    NotFoundError,
    ValidationError,
)
from crowdfund.core.security import PasswordHasher
from crowdfund.models import User, Campaign, Donation
from crowdfund.schemas.auth import RegisterRequest, UserStats
from crowdfund.services.base import guarded

logger = structlog.get_logger(__name__)

MIN_NAME_LENGTH = 2
MIN_PASSWORD_LENGTH = 6
# bcrypt only accepts passwords up to 72 bytes
MAX_PASSWORD_BYTES = 72
INVALID_CREDENTIALS = "Invalid email or password"


def normalize_email(email: str) -> str:
    return email.strip().lower()


def password_too_long(password: str) -> bool:
    return len(password.encode("utf-8")) > MAX_PASSWORD_BYTES


class UserService:
    """Business logic for user accounts"""

    @staticmethod
    async def register(db: Session, hasher: PasswordHasher, user_data: RegisterRequest) -> User:
        """Create a user, storing only a salted hash of the password"""
        name = user_data.name.strip()
        email = normalize_email(user_data.email)

        errors = []
        if len(name) < MIN_NAME_LENGTH:
            errors.append({"field": "name", "message": "Name must be at least 2 characters"})
        if len(user_data.password) < MIN_PASSWORD_LENGTH:
            errors.append({"field": "password", "message": "Password must be at least 6 characters"})
        elif password_too_long(user_data.password):
            errors.append({"field": "password", "message": "Password cannot be longer than 72 bytes"})
        if errors:
            raise ValidationError("Validation failed", errors=errors)

        hashed_password = await asyncio.to_thread(hasher.hash, user_data.password)

        def db_register():
            existing = db.execute(select(User.id).where(User.email == email)).scalar_one_or_none()
            if existing:
                raise DuplicateEmail()

            user = User(
                name=name,
                email=email,
                hashed_password=hashed_password,
            )
            db.add(user)
            try:
                db.commit()
            except IntegrityError:
                # Lost a race against a concurrent registration with the same email
                db.rollback()
                raise DuplicateEmail()
            db.refresh(user)
            return user

        user = await guarded(db, db_register, "Failed to register user", email=email)
        logger.info("User registered", user_id=user.id)
        return user

    @staticmethod
    async def verify(db: Session, hasher: PasswordHasher, email: str, password: str) -> User:
        """Return the user for valid credentials; unknown email and wrong password fail alike"""
        email = normalize_email(email)

        def db_lookup():
            return db.execute(select(User).where(User.email == email)).scalar_one_or_none()

        user = await guarded(db, db_lookup, "Failed to look up user")

        stored_hash = user.hashed_password if user else None
        if not await asyncio.to_thread(hasher.verify, password, stored_hash):
            logger.info("Login rejected")
            raise AuthenticationError(INVALID_CREDENTIALS)

        logger.info("Login succeeded", user_id=user.id)
        return user

    @staticmethod
    async def get_user(db: Session, user_id: str) -> User:
        def db_query():
            return db.get(User, user_id)

        user = await guarded(db, db_query, "Failed to get user", user_id=user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    @staticmethod
    async def change_password(
        db: Session,
        hasher: PasswordHasher,
        user: User,
        current_password: str,
        new_password: str
    ) -> None:
        """Replace the password after verifying the current one"""
        if len(new_password) < MIN_PASSWORD_LENGTH:
            raise ValidationError.for_field("newPassword", "New password must be at least 6 characters")
        if password_too_long(new_password):
            raise ValidationError.for_field("newPassword", "New password cannot be longer than 72 bytes")

        if not await asyncio.to_thread(hasher.verify, current_password, user.hashed_password):
            raise AuthenticationError("Current password is incorrect")

        if current_password == new_password:
            raise ValidationError.for_field("newPassword", "New password must be different from current password")

        new_hash = await asyncio.to_thread(hasher.hash, new_password)

        def db_update():
            user.hashed_password = new_hash
            db.add(user)
            db.commit()

        await guarded(db, db_update, "Failed to change password", user_id=user.id)
        logger.info("Password changed", user_id=user.id)

    @staticmethod
    async def list_users(db: Session) -> List[User]:
        """All users, newest first"""
        def db_query():
            return db.execute(
                select(User).order_by(User.created_at.desc(), User.id)
            ).scalars().all()

        users = await guarded(db, db_query, "Failed to list users")
        logger.info("Users retrieved", count=len(users))
        return users

    @staticmethod
    async def get_stats(db: Session, user: User) -> UserStats:
        """Aggregate campaign and donation figures for one user"""
        def db_query():
            campaigns_created, total_raised = db.execute(
                select(func.count(Campaign.id), func.coalesce(func.sum(Campaign.current_amount), 0))
                .where(Campaign.creator_id == user.id)
            ).one()
            donations_made, total_donated = db.execute(
                select(func.count(Donation.id), func.coalesce(func.sum(Donation.amount), 0))
                .where(Donation.donor_id == user.id)
            ).one()
            return UserStats(
                campaigns_created=campaigns_created,
                total_raised=float(total_raised),
                donations_made=donations_made,
                total_donated=float(total_donated),
            )

        return await guarded(db, db_query, "Failed to compute user stats", user_id=user.id)
