from pydantic import Field, EmailStr, ConfigDict
from datetime import datetime
from typing import List

from .common import CamelModel, ApiResponse


class RegisterRequest(CamelModel):
    """Request schema for registering a user"""
    name: str = Field(..., description="Display name (at least 2 characters)")
    email: EmailStr = Field(..., description="Unique email address")
    password: str = Field(..., description="Password (at least 6 characters)")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Ada Lovelace",
                "email": "ada@example.com",
                "password": "analytical"
            }
        }
    )


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1, description="Password is required")


class ChangePasswordRequest(CamelModel):
    current_password: str = Field(..., min_length=1, description="Current password is required")
    new_password: str


class UserResponse(CamelModel):
    """Public user fields (never includes the password hash)"""
    id: str
    name: str
    email: str
    role: str
    avatar: str
    created_at: datetime


class UserSummary(CamelModel):
    """User fields embedded in campaigns and donations"""
    id: str
    name: str
    email: str
    avatar: str


class UserStats(CamelModel):
    campaigns_created: int
    total_raised: float
    donations_made: int
    total_donated: float


class AuthResponse(ApiResponse):
    token: str
    user: UserResponse


class UserEnvelope(ApiResponse):
    user: UserResponse


class StatsResponse(ApiResponse):
    stats: UserStats


class UserListResponse(ApiResponse):
    count: int
    users: List[UserResponse]
