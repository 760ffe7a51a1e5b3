"""
JWT Session Token Utilities

This module handles JSON Web Token (JWT) creation and verification for wallet authentication.
After a user proves ownership of a wallet by signing a challenge, this module creates a JWT
that is used as a bearer credential for subsequent API requests.

Flow:
1. User verifies wallet signature -> create_access_token() generates JWT
2. User makes API request with JWT in Authorization header -> verify_token() validates it
3. Protected endpoints use get_auth_context() from dependencies.py to resolve the caller

The JWT payload is a fixed, versioned structure:
- ver: claims layout version (currently 1)
- sub: the authenticated wallet address
- role: USER or ADMIN at issuance time
- iat: Issued at timestamp
- exp: Expiration timestamp (ACCESS_TOKEN_EXPIRE_SECONDS, default 7 days)

Tokens are stateless and cannot be revoked. Rotating ENCODE_KEY invalidates every
outstanding token at once.
"""

import enum
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from fst_auth.core.config import settings
from fst_auth.models.account import Role


if not settings.ENCODE_KEY:
    raise RuntimeError("ENCODE_KEY is not configured")

CLAIMS_VERSION = 1


class TokenErrorReason(str, enum.Enum):
    MALFORMED = "malformed"
    BAD_SIGNATURE = "bad_signature"
    EXPIRED = "expired"


class TokenError(Exception):
    def __init__(self, reason: TokenErrorReason) -> None:
        super().__init__(reason.value)
        self.reason = reason


@dataclass(frozen=True)
class SessionClaims:
    address: str
    role: Role
    issued_at: int
    expires_at: int


def create_access_token(address: str, role: Role, now: Optional[datetime] = None) -> str:
    """
    Create a JWT access token for an authenticated wallet address.

    This is called after successful wallet signature verification in /auth/verify endpoint.

    Args:
        address: The wallet address that was verified
        role: The role resolved for the wallet at issuance time
        now: Issuance time, defaults to the current UTC time

    Returns:
        A JWT token string that can be used in Authorization: Bearer <token> header

    Raises:
        ValueError: If address is empty
    """
    if not address:
        raise ValueError("address is required")

    now = now or datetime.now(timezone.utc)
    payload = {
        "ver": CLAIMS_VERSION,
        "sub": address,
        "role": Role(role).value,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=settings.ACCESS_TOKEN_EXPIRE_SECONDS)).timestamp()),
    }
    return jwt.encode(payload, settings.ENCODE_KEY, algorithm=settings.ENCODE_ALGORITHM)


def verify_token(token: str) -> SessionClaims:
    """
    Verify and decode a JWT token.

    Checks token signature, expiration, and the versioned claims layout.

    Args:
        token: The JWT token string from Authorization header

    Returns:
        SessionClaims for the token

    Raises:
        TokenError: reason MALFORMED, BAD_SIGNATURE or EXPIRED
    """
    if not token:
        raise TokenError(TokenErrorReason.MALFORMED)

    try:
        payload = jwt.decode(
            token,
            settings.ENCODE_KEY,
            algorithms=[settings.ENCODE_ALGORITHM],
            options={"require": ["exp", "iat", "sub"]},
        )
    except jwt.ExpiredSignatureError:
        raise TokenError(TokenErrorReason.EXPIRED)
    except jwt.InvalidSignatureError:
        raise TokenError(TokenErrorReason.BAD_SIGNATURE)
    except jwt.InvalidTokenError:
        raise TokenError(TokenErrorReason.MALFORMED)

    if payload.get("ver") != CLAIMS_VERSION or not isinstance(payload.get("sub"), str):
        raise TokenError(TokenErrorReason.MALFORMED)
    try:
        role = Role(payload.get("role"))
    except ValueError:
        raise TokenError(TokenErrorReason.MALFORMED)

    return SessionClaims(
        address=payload["sub"],
        role=role,
        issued_at=int(payload["iat"]),
        expires_at=int(payload["exp"]),
    )
