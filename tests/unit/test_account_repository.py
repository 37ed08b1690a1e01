import pytest
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

from core.database.connection import DatabaseManager
from core.database.models import Account, AppSecurity
from core.utils.exceptions import AccountNotFoundError
from services.vault.repository import AccountRepository, SECURITY_ROW_ID
from services.vault.security import EncryptedPayload


@pytest.fixture
def mock_session():
    session = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def mock_db_manager(mock_session):
    """Database manager whose sessions all resolve to ``mock_session``."""
    db = MagicMock(spec=DatabaseManager)

    @asynccontextmanager
    async def _get_session():
        yield mock_session

    db.get_session.side_effect = _get_session
    return db


class TestAccountRepository:

    @pytest.mark.asyncio
    async def test_get_security_missing_row(self, mock_db_manager, mock_session):
        mock_session.get.return_value = None
        repo = AccountRepository(mock_db_manager)

        assert await repo.get_security() is None
        mock_session.get.assert_awaited_once_with(AppSecurity, SECURITY_ROW_ID)

    @pytest.mark.asyncio
    async def test_get_security_maps_row(self, mock_db_manager, mock_session):
        unlocked_at = datetime(2026, 1, 2, tzinfo=timezone.utc)
        mock_session.get.return_value = AppSecurity(
            id=1, password_hash="hash", key_salt="ab" * 32,
            is_setup_complete=True, last_unlocked_at=unlocked_at,
        )
        repo = AccountRepository(mock_db_manager)

        record = await repo.get_security()

        assert record.password_hash == "hash"
        assert record.key_salt == "ab" * 32
        assert record.is_setup_complete is True
        assert record.last_unlocked_at == unlocked_at

    @pytest.mark.asyncio
    async def test_save_security_creates_row(self, mock_db_manager, mock_session):
        mock_session.get.return_value = None
        repo = AccountRepository(mock_db_manager)

        await repo.save_security("hash", "cd" * 32)

        row = mock_session.add.call_args.args[0]
        assert isinstance(row, AppSecurity)
        assert row.id == SECURITY_ROW_ID
        assert row.is_setup_complete is True
        assert row.key_salt == "cd" * 32
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_add_account_stores_hex_payload(self, mock_db_manager, mock_session):
        repo = AccountRepository(mock_db_manager)

        await repo.add_account("acc1", "Main", "0x" + "aa" * 20,
                               EncryptedPayload(ciphertext="c0ffee", iv="00" * 16, tag="11" * 16))

        row = mock_session.add.call_args.args[0]
        assert isinstance(row, Account)
        assert (row.id, row.private_key_encrypted, row.private_key_iv, row.private_key_tag) == (
            "acc1", "c0ffee", "00" * 16, "11" * 16
        )
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_list_accounts_maps_rows(self, mock_db_manager, mock_session):
        result = MagicMock()
        result.scalars.return_value.all.return_value = [
            Account(id="acc1", name="Main", address="0x1",
                    private_key_encrypted="c0", private_key_iv="i0", private_key_tag="t0"),
        ]
        mock_session.execute.return_value = result
        repo = AccountRepository(mock_db_manager)

        accounts = await repo.list_accounts()

        assert [(a.account_id, a.ciphertext, a.iv, a.tag) for a in accounts] == [("acc1", "c0", "i0", "t0")]

    @pytest.mark.asyncio
    async def test_rotate_master_password_single_commit(self, mock_db_manager, mock_session):
        security = AppSecurity(id=1, password_hash="old", key_salt="ab" * 32, is_setup_complete=True)
        account = Account(id="acc1", name="Main", address="0x1",
                          private_key_encrypted="c0", private_key_iv="i0", private_key_tag="t0")
        rows = {(AppSecurity, SECURITY_ROW_ID): security, (Account, "acc1"): account}
        mock_session.get.side_effect = lambda model, key: rows.get((model, key))
        repo = AccountRepository(mock_db_manager)

        await repo.rotate_master_password(
            "new", "cd" * 32, {"acc1": EncryptedPayload(ciphertext="c1", iv="i1", tag="t1")}
        )

        assert (security.password_hash, security.key_salt) == ("new", "cd" * 32)
        assert (account.private_key_encrypted, account.private_key_iv, account.private_key_tag) == (
            "c1", "i1", "t1"
        )
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_rotate_master_password_unknown_account(self, mock_db_manager, mock_session):
        security = AppSecurity(id=1, password_hash="old", key_salt="ab" * 32, is_setup_complete=True)
        mock_session.get.side_effect = lambda model, key: security if model is AppSecurity else None
        repo = AccountRepository(mock_db_manager)

        with pytest.raises(AccountNotFoundError):
            await repo.rotate_master_password(
                "new", "cd" * 32, {"ghost": EncryptedPayload(ciphertext="c1", iv="i1", tag="t1")}
            )

        mock_session.commit.assert_not_awaited()
