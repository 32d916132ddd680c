"""Unit tests for JWT token generation and validation

Tests cover:
- Token creation with the expected claims
- Round trip through decode_token
- Expired and tampered tokens
"""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import jwt
import pytest

from buildtrack.auth.jwt import create_access_token, decode_token


class TestCreateAccessToken:

    def test_token_contains_correct_claims(self):
        user_id = uuid4()

        token = create_access_token(user_id=user_id, role="architect", email="arch@test.com")

        payload = jwt.decode(token, options={"verify_signature": False})
        assert payload['sub'] == str(user_id)
        assert payload['role'] == "architect"
        assert payload['email'] == "arch@test.com"
        assert 'iat' in payload
        assert 'exp' in payload

    def test_token_expiration_time(self):
        before = datetime.now(timezone.utc)
        token = create_access_token(
            user_id=uuid4(), role="admin", email="admin@test.com", expires_in_minutes=30
        )

        payload = jwt.decode(token, options={"verify_signature": False})
        exp_time = datetime.fromtimestamp(payload['exp'], tz=timezone.utc)
        time_diff = abs((exp_time - (before + timedelta(minutes=30))).total_seconds())
        assert time_diff < 5, f'Expected expiry around 30 min from now, got diff of {time_diff}s'


class TestDecodeToken:

    def test_decode_valid_token(self):
        user_id = uuid4()
        token = create_access_token(user_id=user_id, role="customer", email="c@test.com")

        payload = decode_token(token)

        assert payload['sub'] == str(user_id)
        assert payload['role'] == "customer"

    def test_decode_expired_token(self):
        token = create_access_token(
            user_id=uuid4(), role="admin", email="admin@test.com", expires_in_minutes=-1
        )
        with pytest.raises(jwt.ExpiredSignatureError):
            decode_token(token)

    def test_decode_token_signed_with_other_secret(self):
        token = jwt.encode(
            {"sub": str(uuid4()), "exp": int(datetime.now(timezone.utc).timestamp()) + 60},
            "some-other-secret-that-is-long-enough-for-hs256",
            algorithm="HS256",
        )
        with pytest.raises(jwt.InvalidTokenError):
            decode_token(token)

    def test_decode_garbage(self):
        with pytest.raises(jwt.InvalidTokenError):
            decode_token("not.a.token")
