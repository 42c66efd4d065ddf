from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
import structlog

from crowdfund.api.deps import get_current_user, require_admin, get_token_issuer, get_password_hasher
from crowdfund.core.security import PasswordHasher, TokenIssuer
from crowdfund.database import get_db
from crowdfund.models import User
from crowdfund.schemas import (
    ApiResponse,
    RegisterRequest,
    LoginRequest,
    ChangePasswordRequest,
    UserResponse,
    AuthResponse,
    UserEnvelope,
    StatsResponse,
    UserListResponse,
)
from crowdfund.services import UserService

router = APIRouter(prefix="/auth", tags=["auth"])
logger = structlog.get_logger(__name__)


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(
    user_data: RegisterRequest,
    db: Session = Depends(get_db),
    hasher: PasswordHasher = Depends(get_password_hasher),
    issuer: TokenIssuer = Depends(get_token_issuer)
):
    """Register a new user and return a bearer token"""
    user = await UserService.register(db=db, hasher=hasher, user_data=user_data)
    return AuthResponse(
        message="User registered successfully",
        token=issuer.issue(user.id),
        user=UserResponse.model_validate(user),
    )


@router.post("/login", response_model=AuthResponse)
async def login(
    credentials: LoginRequest,
    db: Session = Depends(get_db),
    hasher: PasswordHasher = Depends(get_password_hasher),
    issuer: TokenIssuer = Depends(get_token_issuer)
):
    """Exchange email and password for a bearer token"""
    user = await UserService.verify(db=db, hasher=hasher, email=credentials.email, password=credentials.password)
    return AuthResponse(
        message="Login successful",
        token=issuer.issue(user.id),
        user=UserResponse.model_validate(user),
    )


@router.get("/me", response_model=UserEnvelope)
async def me(user: User = Depends(get_current_user)):
    return UserEnvelope(user=UserResponse.model_validate(user))


@router.get("/stats", response_model=StatsResponse)
async def stats(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Campaign and donation totals for the current user"""
    user_stats = await UserService.get_stats(db=db, user=user)
    return StatsResponse(stats=user_stats)


@router.put("/change-password", response_model=ApiResponse)
async def change_password(
    passwords: ChangePasswordRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    hasher: PasswordHasher = Depends(get_password_hasher)
):
    await UserService.change_password(
        db=db,
        hasher=hasher,
        user=user,
        current_password=passwords.current_password,
        new_password=passwords.new_password
    )
    return ApiResponse(message="Password changed successfully")


@router.get("/users", response_model=UserListResponse)
async def list_users(
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """All registered users (admin only)"""
    users = await UserService.list_users(db=db)
    return UserListResponse(
        count=len(users),
        users=[UserResponse.model_validate(u) for u in users],
    )
