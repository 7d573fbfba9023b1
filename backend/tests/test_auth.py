"""
Tests for token handling.

Tokens are signed by the identity service with the shared secret; this
service only decodes them.

Run with: pytest tests/test_auth.py -v
"""

from datetime import datetime, timedelta, timezone

from jose import jwt

from config import get_settings
from services.auth import create_access_token, decode_token


def _identity_service_token(**claims):
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload = {"type": "access", "iat": now, "exp": now + timedelta(minutes=5)}
    payload.update(claims)
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


class TestDecodeToken:

    def test_externally_signed_token_is_accepted(self):
        token = _identity_service_token(sub="user-ana", role="professional", professional_id="12")

        data = decode_token(token)

        assert data.user_id == "user-ana"
        assert data.role == "professional"
        assert data.professional_id == 12

    def test_minted_token_matches_identity_format(self):
        minted = decode_token(create_access_token("user-ana", "professional", professional_id=12))
        external = decode_token(
            _identity_service_token(sub="user-ana", role="professional", professional_id=12)
        )

        assert minted.user_id == external.user_id
        assert minted.role == external.role
        assert minted.professional_id == external.professional_id
        assert minted.token_type == external.token_type == "access"

    def test_expired_token_is_rejected(self):
        token = create_access_token("user-ana", "client", expires_delta=timedelta(minutes=-1))

        assert decode_token(token) is None

    def test_wrong_secret_is_rejected(self):
        token = jwt.encode({"sub": "user-ana", "role": "admin"}, "another-secret", algorithm="HS256")

        assert decode_token(token) is None

    def test_missing_role_is_rejected(self):
        assert decode_token(_identity_service_token(sub="user-ana")) is None
