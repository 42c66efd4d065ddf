"""
Unit Tests for password hashing and bearer tokens
"""
from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from crowdfund.core.errors import AuthenticationError, TokenExpiredError, TokenInvalidError
from crowdfund.core.security import PasswordHasher, TokenIssuer


class TestPasswordHasher:

    def test_hash_is_salted_and_verifies(self, hasher):
        first = hasher.hash("s3cret-pw")
        second = hasher.hash("s3cret-pw")

        assert first != second
        assert "s3cret-pw" not in first
        assert hasher.verify("s3cret-pw", first)
        assert hasher.verify("s3cret-pw", second)

    def test_wrong_password_rejected(self, hasher):
        assert not hasher.verify("wrong", hasher.hash("right"))

    def test_missing_hash_rejected(self, hasher):
        """No stored hash never verifies, even for the dummy password"""
        assert not hasher.verify("crowdfund-dummy-password", None)

    def test_malformed_hash_rejected(self, hasher):
        assert not hasher.verify("anything", "not-a-bcrypt-hash")

    def test_rounds_configurable(self):
        assert PasswordHasher(rounds=5).hash("pw").startswith("$2b$05$")


class TestTokenIssuer:

    def test_issue_and_verify(self, issuer):
        token = issuer.issue("user-123")
        assert issuer.verify(token) == "user-123"

    def test_claims(self, issuer):
        now = datetime(2030, 1, 1, tzinfo=timezone.utc)
        token = issuer.issue("user-123", now=now)

        claims = jwt.get_unverified_claims(token)
        assert claims["sub"] == "user-123"
        assert claims["iat"] == int(now.timestamp())
        assert claims["exp"] == int((now + timedelta(days=30)).timestamp())

    def test_expired_token(self, issuer):
        token = issuer.issue("user-123", now=datetime.now(timezone.utc) - timedelta(days=31))

        with pytest.raises(TokenExpiredError) as exc_info:
            issuer.verify(token)
        assert exc_info.value.message == "Token expired. Please login again."
        assert exc_info.value.status_code == 401

    def test_tampered_token(self, issuer):
        token = issuer.issue("user-123")
        head, payload, signature = token.split(".")
        tampered = ".".join([head, payload, signature[::-1]])

        with pytest.raises(TokenInvalidError):
            issuer.verify(tampered)

    def test_wrong_secret(self, issuer):
        other = TokenIssuer(secret="another-secret")
        with pytest.raises(TokenInvalidError):
            issuer.verify(other.issue("user-123"))

    def test_garbage_token(self, issuer):
        with pytest.raises(TokenInvalidError) as exc_info:
            issuer.verify("not.a.token")
        assert exc_info.value.message == "Invalid token."

    def test_token_without_subject(self, issuer):
        token = jwt.encode({"exp": datetime.now(timezone.utc) + timedelta(days=1)}, "test-secret", algorithm="HS256")
        with pytest.raises(TokenInvalidError):
            issuer.verify(token)

    def test_expired_and_invalid_are_distinct(self):
        assert issubclass(TokenExpiredError, AuthenticationError)
        assert issubclass(TokenInvalidError, AuthenticationError)
        assert not issubclass(TokenExpiredError, TokenInvalidError)
        assert not issubclass(TokenInvalidError, TokenExpiredError)
