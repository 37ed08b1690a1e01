"""Persistence of encrypted accounts and the master password record."""

from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy import select

from core.database.connection import DatabaseManager
from core.database.models import Account, AppSecurity
from core.logging import get_database_logger
from core.utils.exceptions import AccountNotFoundError, VaultNotInitializedError
from .models import EncryptedAccount, SecurityRecord
from .security import EncryptedPayload

logger = get_database_logger("account_repository")

SECURITY_ROW_ID = 1


def _to_encrypted_account(row: Account) -> EncryptedAccount:
    return EncryptedAccount(
        account_id=row.id,
        name=row.name,
        address=row.address,
        ciphertext=row.private_key_encrypted,
        iv=row.private_key_iv,
        tag=row.private_key_tag,
    )


class AccountRepository:
    """Reads and writes the ``accounts`` and ``app_security`` tables."""

    def __init__(self, db_manager: DatabaseManager):
        self.db_manager = db_manager

    async def get_security(self) -> Optional[SecurityRecord]:
        async with self.db_manager.get_session() as session:
            row = await session.get(AppSecurity, SECURITY_ROW_ID)
            if row is None:
                return None
            return SecurityRecord(
                password_hash=row.password_hash,
                key_salt=row.key_salt,
                is_setup_complete=bool(row.is_setup_complete),
                last_unlocked_at=row.last_unlocked_at,
            )

    async def save_security(self, password_hash: str, key_salt: str) -> None:
        now = datetime.now(timezone.utc)
        async with self.db_manager.get_session() as session:
            row = await session.get(AppSecurity, SECURITY_ROW_ID)
            if row is None:
                row = AppSecurity(id=SECURITY_ROW_ID)
                session.add(row)
            row.password_hash = password_hash
            row.key_salt = key_salt
            row.is_setup_complete = True
            row.setup_at = now
            row.updated_at = now
            await session.commit()
        logger.info("Master password record saved")

    async def rotate_master_password(self, password_hash: str, key_salt: str,
                                     payloads: Dict[str, EncryptedPayload]) -> None:
        """Replace the password record and re-encrypted accounts in one commit."""
        now = datetime.now(timezone.utc)
        async with self.db_manager.get_session() as session:
            security = await session.get(AppSecurity, SECURITY_ROW_ID)
            if security is None:
                raise VaultNotInitializedError("App setup is not complete")
            security.password_hash = password_hash
            security.key_salt = key_salt
            security.updated_at = now

            for account_id, payload in payloads.items():
                row = await session.get(Account, account_id)
                if row is None:
                    raise AccountNotFoundError(account_id)
                row.private_key_encrypted = payload.ciphertext
                row.private_key_iv = payload.iv
                row.private_key_tag = payload.tag

            await session.commit()
        logger.info("Master password rotated", account_count=len(payloads))

    async def mark_unlocked(self) -> None:
        async with self.db_manager.get_session() as session:
            row = await session.get(AppSecurity, SECURITY_ROW_ID)
            if row is not None:
                row.last_unlocked_at = datetime.now(timezone.utc)
                await session.commit()

    async def list_accounts(self) -> List[EncryptedAccount]:
        async with self.db_manager.get_session() as session:
            result = await session.execute(select(Account).order_by(Account.created_at))
            return [_to_encrypted_account(row) for row in result.scalars().all()]

    async def get_account(self, account_id: str) -> Optional[EncryptedAccount]:
        async with self.db_manager.get_session() as session:
            row = await session.get(Account, account_id)
            return _to_encrypted_account(row) if row is not None else None

    async def add_account(self, account_id: str, name: str, address: str,
                          payload: EncryptedPayload) -> None:
        async with self.db_manager.get_session() as session:
            session.add(Account(
                id=account_id,
                name=name,
                address=address,
                private_key_encrypted=payload.ciphertext,
                private_key_iv=payload.iv,
                private_key_tag=payload.tag,
            ))
            await session.commit()
        logger.info("Account stored", account_id=account_id, address=address)
