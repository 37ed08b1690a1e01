"""Decrypts persisted accounts into credential entries."""

import asyncio
from typing import List

from core.config.settings import Settings
from core.logging import get_audit_logger
from core.utils.exceptions import (
    AccountNotFoundError,
    DecryptionError,
    InvalidPasswordError,
    VaultNotInitializedError,
)
from .models import CredentialEntry, EncryptedAccount
from .repository import AccountRepository
from .secret_bytes import SecretBytes
from .security import decrypt, derive_key

logger = get_audit_logger("account_key_loader")


class AccountKeyLoader:
    """Turns encrypted account rows into ``CredentialEntry`` objects.

    The derived encryption key is wiped as soon as the batch is decrypted.
    """

    def __init__(self, settings: Settings, repository: AccountRepository):
        self.settings = settings
        self.repository = repository

    async def _derive_encryption_key(self, password: str) -> bytearray:
        security = await self.repository.get_security()
        if security is None or not security.key_salt:
            raise VaultNotInitializedError("No encryption salt found - app not initialized")

        # PBKDF2 is CPU bound; keep it off the event loop
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None, derive_key, password, security.key_salt, self.settings.security
        )

    @staticmethod
    def _decrypt_entry(account: EncryptedAccount, key: bytearray) -> CredentialEntry:
        plaintext = decrypt(account.ciphertext, key, account.iv, account.tag)
        return CredentialEntry(
            account_id=account.account_id,
            account_name=account.name,
            address=account.address,
            signing_key=SecretBytes.adopt(plaintext),
        )

    async def load_all_accounts(self, password: str) -> List[CredentialEntry]:
        """Decrypt every stored account.

        Accounts that fail to decrypt are logged and skipped so one corrupt
        row does not block unlocking the rest.
        """
        key = await self._derive_encryption_key(password)
        try:
            accounts = await self.repository.list_accounts()
            if not accounts:
                logger.warning("No accounts found in database")
                return []

            entries: List[CredentialEntry] = []
            for account in accounts:
                try:
                    entries.append(self._decrypt_entry(account, key))
                except DecryptionError as e:
                    logger.error("Failed to decrypt account",
                                 account_id=account.account_id,
                                 account_name=account.name,
                                 error=str(e))

            logger.info("Decrypted accounts",
                        loaded=len(entries), total=len(accounts))
            return entries
        finally:
            key[:] = bytes(len(key))

    async def load_account(self, account_id: str, password: str) -> CredentialEntry:
        """Decrypt one account without touching any shared state.

        Raises:
            AccountNotFoundError: no stored account has this id.
            InvalidPasswordError: the password does not decrypt the account.
        """
        account = await self.repository.get_account(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)

        key = await self._derive_encryption_key(password)
        try:
            return self._decrypt_entry(account, key)
        except DecryptionError as e:
            raise InvalidPasswordError(f"Password does not decrypt account {account_id}") from e
        finally:
            key[:] = bytes(len(key))
