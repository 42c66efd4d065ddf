from .common import CamelModel, ApiResponse
from .auth import (
    RegisterRequest,
    LoginRequest,
    ChangePasswordRequest,
    UserResponse,
    UserSummary,
    UserStats,
    AuthResponse,
    UserEnvelope,
    StatsResponse,
    UserListResponse,
)
from .campaign import (
    CreateCampaignRequest,
    UpdateCampaignRequest,
    CampaignResponse,
    CampaignSummary,
    Pagination,
    CampaignPage,
    CampaignEnvelope,
    CampaignListResponse,
)
from .donation import (
    CreateDonationRequest,
    DonationResponse,
    DonorDonationResponse,
    DonationHistory,
    DonationEnvelope,
    DonationListResponse,
    MyDonationsResponse,
    CampaignDetailResponse,
)

__all__ = [
    "CamelModel",
    "ApiResponse",
    "RegisterRequest",
    "LoginRequest",
    "ChangePasswordRequest",
    "UserResponse",
    "UserSummary",
    "UserStats",
    "AuthResponse",
    "UserEnvelope",
    "StatsResponse",
    "UserListResponse",
    "CreateCampaignRequest",
    "UpdateCampaignRequest",
    "CampaignResponse",
    "CampaignSummary",
    "Pagination",
    "CampaignPage",
    "CampaignEnvelope",
    "CampaignListResponse",
    "CreateDonationRequest",
    "DonationResponse",
    "DonorDonationResponse",
    "DonationHistory",
    "DonationEnvelope",
    "DonationListResponse",
    "MyDonationsResponse",
    "CampaignDetailResponse",
]
