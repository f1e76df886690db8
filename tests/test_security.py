"""Unit tests for password hashing and access tokens."""

from datetime import timezone

from jose import jwt

from inkwell.utils.security import (
    Identity,
    Rejected,
    Verified,
    create_access_token,
    hash_password,
    verify_access_token,
    verify_password,
)

IDENTITY = Identity(
    id=42,
    email="ann@x.com",
    name="Ann",
    permissions=("posts:create", "posts:update"),
    roles=("author",),
)


class TestPasswords:
    def test_hash_is_salted_and_verifies(self):
        first = hash_password("secret1")
        second = hash_password("secret1")
        assert first != second
        assert verify_password("secret1", first)
        assert not verify_password("secret2", first)


class TestAccessTokens:
    """Round-trip and rejection behaviour of signed tokens."""

    def test_round_trip_returns_same_identity(self):
        result = verify_access_token(create_access_token(IDENTITY))
        assert isinstance(result, Verified)
        assert result.identity == IDENTITY
        assert result.expires_at > result.issued_at
        assert result.expires_at.tzinfo == timezone.utc

    def test_expired_token_is_rejected(self):
        result = verify_access_token(create_access_token(IDENTITY, expires_minutes=-1))
        assert isinstance(result, Rejected)
        assert result.details == {"tokenExpired": True}

    def test_wrong_signature_is_rejected(self):
        forged = jwt.encode({"sub": "42", "email": "ann@x.com"}, "other-secret", algorithm="HS256")
        result = verify_access_token(forged)
        assert isinstance(result, Rejected)
        assert result.details == {"invalidToken": True}

    def test_garbage_is_rejected(self):
        assert isinstance(verify_access_token("not.a.token"), Rejected)

    def test_identity_helpers(self):
        assert IDENTITY.has_permission("posts:create")
        assert not IDENTITY.has_permission("categories:manage")
        assert IDENTITY.has_role("author")
        assert not IDENTITY.is_admin
        assert Identity(id=1, email="a@x.com", roles=("admin",)).is_admin
