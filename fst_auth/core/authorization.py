"""
Authorization level resolution.

One place decides whether a wallet acts as USER or ADMIN. Sources, highest wins:
1. ADMIN_WALLETS allow-list (operator configuration, case-insensitive)
2. persisted Account.role
3. role claim carried by the session token
4. USER
"""

from typing import Optional

from fst_auth.core.config import settings
from fst_auth.models.account import Account, Role


def is_admin_wallet(address: str) -> bool:
    if not address:
        return False
    return address.strip().lower() in settings.admin_wallets


def resolve_role(address: str, token_role: Optional[Role], account: Optional[Account]) -> Role:
    """
    Resolve the effective role for a wallet.

    account may be None: a freshly verified wallet can be seen before its
    record is visible, and that must not fail the request.
    """
    if is_admin_wallet(address):
        return Role.ADMIN
    if account is not None and account.role == Role.ADMIN:
        return Role.ADMIN
    if token_role == Role.ADMIN:
        return Role.ADMIN
    return Role.USER
