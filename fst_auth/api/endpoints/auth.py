import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, status
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

import fst_auth.schemas.auth as schemas
from fst_auth.core.authorization import resolve_role
from fst_auth.core.challenge_store import ChallengeExpired, ChallengeMissing, ChallengeStore
from fst_auth.core.dependencies import extract_bearer_token, get_challenge_store, resolve_auth_context
from fst_auth.core.errors import bad_request, server_error, unauthorized
from fst_auth.core.jwt_utils import TokenError, create_access_token
from fst_auth.core.solana_auth import is_valid_wallet_address, verify_signature
from fst_auth.db.session import get_db
from fst_auth.services.accounts import upsert_on_verify

logger = logging.getLogger(__name__)

router = APIRouter()
group_tags = ["Auth"]


@router.post(
    "/nonce",
    tags=group_tags,
    response_model=schemas.NonceResponse,
)
@router.post(
    "/challenge",
    tags=group_tags,
    response_model=schemas.NonceResponse,
)
def request_nonce(
    body: schemas.NonceRequest,
    store: ChallengeStore = Depends(get_challenge_store),
) -> schemas.NonceResponse:
    """
    Issue a login challenge for a wallet address.

    The returned message must be signed by the wallet and sent back to /auth/verify.
    Requesting again replaces any pending challenge for the same wallet.
    """
    address = (body.walletAddress or "").strip()
    if not address:
        raise bad_request("walletAddress required")
    if not is_valid_wallet_address(address):
        raise bad_request("invalid_wallet_address")

    try:
        challenge = store.issue(address)
    except RedisError:
        logger.exception("Failed to store challenge for %s", address)
        raise server_error()

    return schemas.NonceResponse(nonce=challenge.nonce, message=challenge.message)


@router.post(
    "/verify",
    tags=group_tags,
    response_model=schemas.AuthResponse,
)
def verify_wallet(
    body: schemas.VerifyRequest,
    store: ChallengeStore = Depends(get_challenge_store),
    db: Session = Depends(get_db),
) -> schemas.AuthResponse:
    """
    Verify a signed challenge and return a session token.

    A bad signature leaves the challenge in place, so the wallet may retry until
    it expires. A good one consumes it.
    """
    address = (body.walletAddress or "").strip()
    signature = (body.signature or "").strip()
    if not address or not signature:
        raise bad_request("missing_params")

    try:
        challenge = store.get_live(address)
    except ChallengeMissing:
        raise bad_request("nonce_missing")
    except ChallengeExpired:
        logger.info("Expired challenge presented for %s", address)
        raise bad_request("nonce_expired")
    except RedisError:
        logger.exception("Failed to read challenge for %s", address)
        raise server_error()

    if not verify_signature(address, challenge.message, signature):
        logger.warning("Invalid signature for wallet %s", address)
        raise unauthorized("invalid_signature")

    try:
        # a newer challenge or a concurrent verify got here first
        if not store.consume(address, challenge.nonce):
            raise bad_request("nonce_missing")
        account = upsert_on_verify(db, address)
    except RedisError:
        logger.exception("Failed to consume challenge for %s", address)
        raise server_error()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to upsert account for %s", address)
        raise server_error()

    role = resolve_role(address, None, account)
    token = create_access_token(address, role)
    logger.info("Wallet verified: %s | Role: %s", address, role.value)
    return schemas.AuthResponse(token=token, wallet=address, role=role)


@router.post(
    "/introspect",
    tags=group_tags,
    response_model=schemas.IntrospectResponse,
    responses={status.HTTP_401_UNAUTHORIZED: {"model": schemas.IntrospectResponse}},
)
def introspect(
    authorization: Optional[str] = Header(None, alias="Authorization"),
    db: Session = Depends(get_db),
):
    """
    Report whether a bearer token is active and who it belongs to.

    The role is re-resolved from the allow-list and the account record on every
    call rather than echoed from the token. Read only.
    """
    token = extract_bearer_token(authorization)
    if token is None:
        return _inactive("missing_token")

    try:
        auth = resolve_auth_context(token, db)
    except TokenError as e:
        return _inactive(e.reason.value)
    except SQLAlchemyError:
        logger.exception("Account lookup failed during introspection")
        raise server_error()

    return schemas.IntrospectResponse(ok=True, active=True, wallet=auth.address, role=auth.role)


def _inactive(error: str) -> JSONResponse:
    body = schemas.IntrospectResponse(ok=False, active=False, error=error)
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content=body.model_dump(mode="json"),
        headers={"WWW-Authenticate": "Bearer"},
    )
