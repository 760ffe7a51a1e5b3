import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

import fst_auth.schemas.auth as schemas
from fst_auth.core.dependencies import AuthContext, require_admin
from fst_auth.core.errors import bad_request, server_error
from fst_auth.core.solana_auth import is_valid_wallet_address
from fst_auth.db.session import get_db
from fst_auth.services.accounts import list_accounts, set_role

logger = logging.getLogger(__name__)

router = APIRouter()
group_tags = ["Admin"]


@router.get(
    "/accounts",
    tags=group_tags,
    response_model=schemas.AccountListResponse,
)
def get_accounts(
    limit: int = Query(default=20, ge=1, le=100, description="Maximum number of accounts to return, default: 20, max: 100"),
    offset: int = Query(default=0, ge=0, description="Number of accounts to skip for pagination, default: 0"),
    auth: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
) -> schemas.AccountListResponse:
    """List wallet accounts ordered by creation."""
    try:
        accounts, total = list_accounts(db, limit=limit, offset=offset)
    except SQLAlchemyError:
        logger.exception("Failed to list accounts")
        raise server_error()

    return schemas.AccountListResponse(
        accounts=[schemas.AccountOut.model_validate(account) for account in accounts],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.put(
    "/accounts/{address}/role",
    tags=group_tags,
    response_model=schemas.AccountOut,
)
def update_account_role(
    address: str,
    body: schemas.RoleUpdateRequest,
    auth: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
) -> schemas.AccountOut:
    """
    Set the persisted role of a wallet.

    Takes effect on the wallet's next authenticated request, since roles are
    re-resolved per request. Demoting an ADMIN_WALLETS address is stored but
    has no effect while the address stays allow-listed.
    """
    address = address.strip()
    if not is_valid_wallet_address(address):
        raise bad_request("invalid_wallet_address")

    try:
        account = set_role(db, address, body.role)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to update role for %s", address)
        raise server_error()

    logger.info("Admin %s set role of %s to %s", auth.address, address, body.role.value)
    return schemas.AccountOut.model_validate(account)
