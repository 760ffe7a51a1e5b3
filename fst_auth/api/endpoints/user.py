import logging

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

import fst_auth.schemas.auth as schemas
from fst_auth.core.dependencies import AuthContext, get_auth_context
from fst_auth.core.errors import server_error
from fst_auth.db.session import get_db
from fst_auth.services.accounts import get_account

logger = logging.getLogger(__name__)

router = APIRouter()
group_tags = ["user"]


@router.get(
    "/me",
    tags=group_tags,
    response_model=schemas.MeResponse,
)
def get_me(
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
) -> schemas.MeResponse:
    """Profile of the authenticated wallet."""
    try:
        account = get_account(db, auth.address)
    except SQLAlchemyError:
        logger.exception("Failed to load account %s", auth.address)
        raise server_error()

    return schemas.MeResponse(
        wallet=auth.address,
        role=auth.role,
        displayName=account.display_name if account is not None else None,
    )
