from datetime import datetime, timedelta, timezone

import jwt
import pytest

from fst_auth.core.config import settings
from fst_auth.core.jwt_utils import (
    TokenError,
    TokenErrorReason,
    create_access_token,
    verify_token,
)
from fst_auth.models.account import Role

ADDRESS = "9xQeWvG816bUx9EPjHmaT23yvVM2ZWbrrpZb9PusVFin"


def _encode(payload: dict, key: str | None = None) -> str:
    return jwt.encode(payload, key or settings.ENCODE_KEY, algorithm=settings.ENCODE_ALGORITHM)


def _payload(**overrides) -> dict:
    now = int(datetime.now(timezone.utc).timestamp())
    payload = {"ver": 1, "sub": ADDRESS, "role": "USER", "iat": now, "exp": now + 3600}
    payload.update(overrides)
    return payload


class TestCreateAccessToken:
    """Test cases for session token issuance"""

    def test_round_trip_claims(self):
        token = create_access_token(ADDRESS, Role.ADMIN)
        claims = verify_token(token)
        assert claims.address == ADDRESS
        assert claims.role == Role.ADMIN

    def test_default_lifetime_is_seven_days(self):
        now = datetime.now(timezone.utc)
        claims = verify_token(create_access_token(ADDRESS, Role.USER, now=now))
        assert claims.expires_at - claims.issued_at == 7 * 24 * 3600
        assert claims.issued_at == int(now.timestamp())

    def test_payload_is_versioned(self):
        token = create_access_token(ADDRESS, Role.USER)
        payload = jwt.decode(token, options={"verify_signature": False})
        assert set(payload) == {"ver", "sub", "role", "iat", "exp"}
        assert payload["ver"] == 1

    def test_empty_address_rejected(self):
        with pytest.raises(ValueError):
            create_access_token("", Role.USER)


class TestVerifyToken:
    """Test cases for session token verification failures"""

    def _reason(self, token: str) -> TokenErrorReason:
        with pytest.raises(TokenError) as exc_info:
            verify_token(token)
        return exc_info.value.reason

    def test_expired(self):
        issued = datetime.now(timezone.utc) - timedelta(days=8)
        assert self._reason(create_access_token(ADDRESS, Role.USER, now=issued)) == TokenErrorReason.EXPIRED

    def test_bad_signature(self):
        token = _encode(_payload(), key="a-completely-different-signing-key-value")
        assert self._reason(token) == TokenErrorReason.BAD_SIGNATURE

    @pytest.mark.parametrize("token", ["", "not-a-token", "a.b.c"])
    def test_malformed(self, token):
        assert self._reason(token) == TokenErrorReason.MALFORMED

    def test_missing_version(self):
        payload = _payload()
        del payload["ver"]
        assert self._reason(_encode(payload)) == TokenErrorReason.MALFORMED

    def test_unknown_role(self):
        assert self._reason(_encode(_payload(role="SUPERUSER"))) == TokenErrorReason.MALFORMED

    def test_missing_subject(self):
        payload = _payload()
        del payload["sub"]
        assert self._reason(_encode(payload)) == TokenErrorReason.MALFORMED

    def test_rotated_key_invalidates_tokens(self, monkeypatch):
        token = create_access_token(ADDRESS, Role.USER)
        monkeypatch.setattr(settings, "ENCODE_KEY", "rotated-encode-key-with-enough-length-x")
        assert self._reason(token) == TokenErrorReason.BAD_SIGNATURE
