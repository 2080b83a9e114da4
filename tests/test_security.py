"""
Tests for bearer token issuing and verification.
"""

from datetime import timedelta

from jose import jwt

from shortlinks.core.security import ALGORITHM, Identity, TokenAuthenticator


def test_token_round_trip():
    """Test that an issued token authenticates its subject."""
    auth = TokenAuthenticator("secret")
    token = auth.create_access_token("user@example.com")
    assert auth.authenticate(token) == Identity(subject="user@example.com")


def test_missing_token_is_rejected():
    """Test that a missing token gives no identity."""
    auth = TokenAuthenticator("secret")
    assert auth.authenticate(None) is None
    assert auth.authenticate("") is None


def test_garbage_token_is_rejected():
    """Test that a malformed token gives no identity."""
    assert TokenAuthenticator("secret").authenticate("not.a.jwt") is None


def test_token_signed_with_other_key_is_rejected():
    """Test that a foreign signature is rejected."""
    token = TokenAuthenticator("other-secret").create_access_token("mallory")
    assert TokenAuthenticator("secret").authenticate(token) is None


def test_expired_token_is_rejected():
    """Test that an expired token is rejected."""
    auth = TokenAuthenticator("secret")
    token = auth.create_access_token("user", expires_delta=timedelta(seconds=-10))
    assert auth.authenticate(token) is None


def test_token_without_subject_is_rejected():
    """Test that a token without sub is rejected."""
    token = jwt.encode({"role": "admin"}, "secret", algorithm=ALGORITHM)
    assert TokenAuthenticator("secret").authenticate(token) is None
