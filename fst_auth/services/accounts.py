import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fst_auth.core.authorization import is_admin_wallet
from fst_auth.models.account import Account, Role

logger = logging.getLogger(__name__)


def get_account(db: Session, address: str) -> Optional[Account]:
    return db.query(Account).filter(Account.wallet_address == address).first()


def upsert_on_verify(db: Session, address: str) -> Account:
    """
    Create the account on first login, refresh last_login_at otherwise.

    Allow-listed wallets are created as, or promoted to, ADMIN. Two first
    logins racing on the unique wallet_address resolve by re-reading the row
    the other request inserted.
    """
    now = datetime.now(timezone.utc)
    account = get_account(db, address)
    if account is None:
        account = Account(
            wallet_address=address,
            role=Role.ADMIN if is_admin_wallet(address) else Role.USER,
            created_at=now,
            last_login_at=now,
        )
        db.add(account)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            account = get_account(db, address)
            if account is None:
                raise
        else:
            db.refresh(account)
            logger.info("Created account %s with role %s", address, account.role.value)
            return account

    account.last_login_at = now  # type: ignore
    if is_admin_wallet(address) and account.role != Role.ADMIN:
        logger.info("Promoting allow-listed wallet %s to ADMIN", address)
        account.role = Role.ADMIN  # type: ignore
    db.commit()
    db.refresh(account)
    return account


def set_role(db: Session, address: str, role: Role) -> Account:
    """Persist a role for address, creating the account if it was never seen."""
    account = get_account(db, address)
    if account is None:
        account = Account(wallet_address=address, role=role)
        db.add(account)
    else:
        account.role = role  # type: ignore
    db.commit()
    db.refresh(account)
    logger.info("Role for %s set to %s", address, role.value)
    return account


def list_accounts(db: Session, limit: int = 20, offset: int = 0) -> Tuple[List[Account], int]:
    query = db.query(Account)
    total = query.count()
    accounts = query.order_by(Account.id.asc()).offset(offset).limit(limit).all()
    return accounts, total
