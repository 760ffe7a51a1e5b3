from unittest.mock import patch

from sqlalchemy.orm import Session

from fst_auth.core.config import settings
from fst_auth.models.account import Account, Role
from fst_auth.services import accounts
from tests.helpers import Wallet


class TestAccountService:
    """Test cases for account persistence"""

    def test_first_verify_creates_user(self, db_session: Session, wallet: Wallet):
        account = accounts.upsert_on_verify(db_session, wallet.address)
        assert account.id is not None
        assert account.role == Role.USER
        assert accounts.get_account(db_session, wallet.address).id == account.id

    def test_second_verify_reuses_account(self, db_session: Session, wallet: Wallet):
        first = accounts.upsert_on_verify(db_session, wallet.address)
        second = accounts.upsert_on_verify(db_session, wallet.address)
        assert first.id == second.id
        assert db_session.query(Account).count() == 1

    def test_allow_listed_wallet_created_as_admin(self, db_session: Session, admin_wallet: Wallet):
        assert accounts.upsert_on_verify(db_session, admin_wallet.address).role == Role.ADMIN

    def test_existing_user_promoted_when_allow_listed(self, db_session: Session, wallet: Wallet, monkeypatch):
        accounts.upsert_on_verify(db_session, wallet.address)
        monkeypatch.setattr(settings, "ADMIN_WALLETS", wallet.address)
        assert accounts.upsert_on_verify(db_session, wallet.address).role == Role.ADMIN

    def test_persisted_admin_kept_when_not_allow_listed(self, db_session: Session, wallet: Wallet):
        accounts.set_role(db_session, wallet.address, Role.ADMIN)
        assert accounts.upsert_on_verify(db_session, wallet.address).role == Role.ADMIN

    def test_concurrent_first_login_recovers(self, db_session: Session, wallet: Wallet):
        """Another request inserted the row between our lookup and our insert"""
        accounts.set_role(db_session, wallet.address, Role.USER)
        real_get_account = accounts.get_account
        calls = {"n": 0}

        def stale_first_lookup(db, address):
            calls["n"] += 1
            if calls["n"] == 1:
                return None
            return real_get_account(db, address)

        with patch.object(accounts, "get_account", side_effect=stale_first_lookup):
            account = accounts.upsert_on_verify(db_session, wallet.address)
        assert account.wallet_address == wallet.address
        assert db_session.query(Account).count() == 1

    def test_set_role_creates_unknown_account(self, db_session: Session, wallet: Wallet):
        account = accounts.set_role(db_session, wallet.address, Role.ADMIN)
        assert account.role == Role.ADMIN
        assert account.created_at is not None

    def test_list_accounts_paginates(self, db_session: Session):
        wallets = [Wallet() for _ in range(5)]
        for item in wallets:
            accounts.upsert_on_verify(db_session, item.address)
        page, total = accounts.list_accounts(db_session, limit=2, offset=1)
        assert total == 5
        assert [a.wallet_address for a in page] == [w.address for w in wallets[1:3]]
