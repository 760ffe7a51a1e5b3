"""
FastAPI Authentication Dependencies
This module provides FastAPI dependency functions that can be injected into route handlers
to authenticate the caller from the Authorization header and resolve their role.
Usage in endpoints:
    @router.get("/protected")
    def protected_route(auth: AuthContext = Depends(get_auth_context)):
        return {"wallet": auth.address, "role": auth.role}

    @router.get("/admin-only")
    def admin_route(auth: AuthContext = Depends(require_admin)):
        ...
Flow:
1. Client sends request with Authorization: Bearer <token> header
2. FastAPI calls get_auth_context() dependency
3. extract_bearer_token() pulls the token out of the header
4. verify_token() validates the JWT (from jwt_utils.py)
5. resolve_role() combines allow-list, account record and token claim
6. Returns AuthContext to the route handler
Missing or bad credentials are 401, a valid non-admin caller on an admin route is 403.
"""

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from fst_auth.core.authorization import resolve_role
from fst_auth.core.challenge_store import ChallengeStore
from fst_auth.core.config import settings
from fst_auth.core.errors import forbidden, server_error, unauthorized
from fst_auth.core.jwt_utils import TokenError, verify_token
from fst_auth.core.kv_store import create_store
from fst_auth.db.session import get_db
from fst_auth.models.account import Role
from fst_auth.services.accounts import get_account

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthContext:
    address: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


@lru_cache(maxsize=1)
def get_challenge_store() -> ChallengeStore:
    """Process-wide challenge store, built from configuration on first use."""
    return ChallengeStore(create_store(), ttl_seconds=settings.NONCE_EXPIRY_SECONDS)


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """
    Extract the token from an Authorization header value.
    Returns None when the header is missing, is not a Bearer header or is empty.
    """
    if not authorization:
        return None
    authorization = authorization.strip()
    if not authorization.lower().startswith("bearer "):
        return None
    token = authorization[7:].strip()
    return token or None


def resolve_auth_context(token: str, db: Session) -> AuthContext:
    """
    Verify token and re-resolve the caller's role against the account record.

    Raises:
        TokenError: token is malformed, forged or expired
        SQLAlchemyError: account lookup failed
    """
    claims = verify_token(token)
    account = get_account(db, claims.address)
    role = resolve_role(claims.address, claims.role, account)
    return AuthContext(address=claims.address, role=role)


def get_auth_context(
    authorization: Optional[str] = Header(None, alias="Authorization"),
    db: Session = Depends(get_db),
) -> AuthContext:
    token = extract_bearer_token(authorization)
    if token is None:
        raise unauthorized("missing_token")

    try:
        return resolve_auth_context(token, db)
    except TokenError as e:
        logger.warning("Rejected session token: %s", e.reason.value)
        raise unauthorized(f"token_{e.reason.value}")
    except SQLAlchemyError:
        logger.exception("Account lookup failed during authentication")
        raise server_error()


def require_admin(auth: AuthContext = Depends(get_auth_context)) -> AuthContext:
    if not auth.is_admin:
        logger.warning("Non-admin wallet %s denied admin route", auth.address)
        raise forbidden("admin_only")
    return auth
