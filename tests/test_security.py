"""
Security Tests

Password hashing and access token round trips.
"""

import uuid
from datetime import timedelta

from lms.core.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)


# ==================== Password Tests ====================

class TestPasswords:
    """Tests for bcrypt hashing."""

    def test_hash_verifies(self):
        hashed = hash_password("s3cret-pass")
        assert hashed != "s3cret-pass"
        assert verify_password("s3cret-pass", hashed) is True
        assert verify_password("other-pass", hashed) is False

    def test_long_password_is_accepted(self):
        password = "x" * 100
        assert verify_password(password, hash_password(password)) is True

    def test_malformed_hash_does_not_raise(self):
        assert verify_password("anything", "not-a-bcrypt-hash") is False


# ==================== Token Tests ====================

class TestAccessTokens:
    """Tests for JWT access tokens."""

    def test_subject_round_trip(self):
        user_id = uuid.uuid4()
        assert decode_access_token(create_access_token(subject=user_id)) == user_id

    def test_expired_token(self):
        token = create_access_token(subject=uuid.uuid4(), expires_delta=timedelta(seconds=-10))
        assert decode_access_token(token) is None

    def test_non_uuid_subject(self):
        assert decode_access_token(create_access_token(subject="admin")) is None

    def test_garbage(self):
        assert decode_access_token("not.a.token") is None
