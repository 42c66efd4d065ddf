"""
Error taxonomy for the crowdfund service.

Every error carries the HTTP status it maps to; the handlers registered in
``crowdfund.main`` render them as ``{"success": false, "message": ...}``.
"""
from typing import List, Optional, Dict


class CrowdfundError(Exception):
    """Base class for all classified errors"""
    status_code: int = 500

    def __init__(self, message: str, errors: Optional[List[Dict[str, str]]] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or []


class ValidationError(CrowdfundError):
    """Malformed or out-of-range input"""
    status_code = 400

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls(message, errors=[{"field": field, "message": message}])


class InvalidAmount(ValidationError):
    def __init__(self, message: str = "Amount must be at least 1"):
        super().__init__(message, errors=[{"field": "amount", "message": message}])


class AuthenticationError(CrowdfundError):
    """Missing, invalid or expired credential"""
    status_code = 401


class TokenExpiredError(AuthenticationError):
    def __init__(self, message: str = "Token expired. Please login again."):
        super().__init__(message)


class TokenInvalidError(AuthenticationError):
    def __init__(self, message: str = "Invalid token."):
        super().__init__(message)


class AuthorizationError(CrowdfundError):
    """Authenticated but not permitted"""
    status_code = 403


class NotFoundError(CrowdfundError):
    status_code = 404


class ConflictError(CrowdfundError):
    """Request conflicts with current state (kept at 400 for API compatibility)"""
    status_code = 400


class DuplicateEmail(ConflictError):
    def __init__(self, message: str = "User with this email already exists"):
        super().__init__(message)


class CampaignClosed(ConflictError):
    def __init__(self, message: str = "Cannot donate to inactive campaign"):
        super().__init__(message)


class SelfDonationForbidden(ConflictError):
    def __init__(self, message: str = "Cannot donate to your own campaign"):
        super().__init__(message)


class UnexpectedError(CrowdfundError):
    """Persistence or infrastructure failure"""
    status_code = 500
