"""
Password hashing and bearer token handling
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from jose import jwt, JWTError, ExpiredSignatureError
import structlog

from crowdfund.core.config import Settings
from crowdfund.core.errors import TokenExpiredError, TokenInvalidError

logger = structlog.get_logger(__name__)


# ============================================================================
# PASSWORDS
# ============================================================================

class PasswordHasher:
    """Salted one-way password hashing with bcrypt"""

    def __init__(self, rounds: int = 10):
        self.rounds = rounds
        # Checked against when the email is unknown so both failure paths cost the same
        self._dummy_hash = self.hash("crowdfund-dummy-password")

    def hash(self, password: str) -> str:
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")

    def verify(self, password: str, password_hash: Optional[str]) -> bool:
        """Compare a plaintext password with a stored hash (None burns a dummy check)"""
        target = password_hash or self._dummy_hash
        try:
            matched = bcrypt.checkpw(password.encode("utf-8"), target.encode("utf-8"))
        except ValueError as e:
            logger.warning("Password verification failed", error=str(e))
            return False
        return matched and password_hash is not None


# ============================================================================
# JWT TOKENS
# ============================================================================

class TokenIssuer:
    """Issues and verifies signed, time-limited bearer tokens"""

    def __init__(self, secret: str, algorithm: str = "HS256", expires_in: timedelta = timedelta(days=30)):
        self._secret = secret
        self.algorithm = algorithm
        self.expires_in = expires_in

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenIssuer":
        return cls(
            secret=settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
            expires_in=timedelta(days=settings.jwt_expiration_days),
        )

    def issue(self, user_id: str, now: Optional[datetime] = None) -> str:
        issued_at = now or datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + self.expires_in).timestamp()),
        }
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def verify(self, token: str) -> str:
        """Return the user id embedded in the token"""
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self.algorithm])
        except ExpiredSignatureError:
            logger.info("Rejected expired token")
            raise TokenExpiredError()
        except JWTError as e:
            logger.info("Rejected invalid token", reason=str(e))
            raise TokenInvalidError()

        user_id = payload.get("sub")
        if not user_id:
            logger.info("Rejected token without subject")
            raise TokenInvalidError()
        return user_id
