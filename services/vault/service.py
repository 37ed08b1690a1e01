# services/vault/service.py

import asyncio
import uuid
from typing import Dict, List

from core.config.settings import Settings
from core.logging import get_audit_logger
from core.utils.exceptions import (
    DecryptionError,
    InvalidPasswordError,
    ValidationError,
    VaultNotInitializedError,
)
from .credential_vault import CredentialVault
from .key_loader import AccountKeyLoader
from .models import AccountSummary, SecurityRecord, UnlockResult, VaultStatus
from .repository import AccountRepository
from .security import (
    EncryptedPayload,
    decrypt,
    derive_key,
    encrypt,
    generate_salt,
    get_password_hash,
    validate_password_strength,
    verify_password,
)

logger = get_audit_logger("vault_service")


class VaultService:
    """Master-password lifecycle around the in-memory credential vault."""

    def __init__(self, settings: Settings, vault: CredentialVault,
                 repository: AccountRepository, key_loader: AccountKeyLoader):
        self.settings = settings
        self.vault = vault
        self.repository = repository
        self.key_loader = key_loader

    async def is_setup_complete(self) -> bool:
        security = await self.repository.get_security()
        return bool(security and security.is_setup_complete)

    def _require_strong(self, password: str, field: str = "password") -> None:
        errors = validate_password_strength(password, self.settings.security)
        if errors:
            raise ValidationError(
                "Password does not meet requirements",
                field=field,
                value=None,
                details={"errors": errors},
            )

    def validate_password(self, password: str) -> List[str]:
        """Unmet strength rules for a candidate password. Nothing is stored."""
        return validate_password_strength(password, self.settings.security)

    async def setup_password(self, password: str) -> None:
        """Store the master password hash and a fresh key salt (first time only)."""
        self._require_strong(password)

        if await self.is_setup_complete():
            raise ValidationError("Setup is already complete", field="password", value=None)

        loop = asyncio.get_running_loop()
        password_hash = await loop.run_in_executor(None, get_password_hash, password)
        await self.repository.save_security(
            password_hash, generate_salt(self.settings.security)
        )
        logger.info("Master password configured")

    async def _verify(self, password: str) -> SecurityRecord:
        security = await self.repository.get_security()
        if security is None or not security.is_setup_complete or not security.password_hash:
            raise VaultNotInitializedError("App setup is not complete")

        loop = asyncio.get_running_loop()
        if not await loop.run_in_executor(None, verify_password, password, security.password_hash):
            logger.warning("Password verification failed")
            raise InvalidPasswordError()
        return security

    async def unlock(self, password: str) -> UnlockResult:
        """Verify the password and load every decryptable account into the vault."""
        await self._verify(password)

        entries = await self.key_loader.load_all_accounts(password)
        self.vault.load_accounts(entries)
        await self.repository.mark_unlocked()

        logger.info("App unlocked", account_count=len(entries))
        return UnlockResult(
            loaded_accounts=len(entries),
            accounts=[AccountSummary(**e.to_public_dict()) for e in entries],
        )

    async def change_password(self, current_password: str, new_password: str) -> int:
        """Rotate the master password, hash and key salt.

        Every stored account is decrypted with the old key and re-encrypted
        under a key derived from the new password and a fresh salt. The
        accounts and the password record are saved in one transaction, so a
        failure leaves the old password fully in effect. An unlocked vault is
        reloaded under the new key.

        Returns the number of re-encrypted accounts.

        Raises:
            ValidationError: the new password is weak or equals the current one.
            InvalidPasswordError: the current password is wrong.
            DecryptionError: a stored account does not decrypt with the current key.
        """
        if current_password == new_password:
            raise ValidationError("New password must be different from the current password",
                                  field="new_password", value=None)
        self._require_strong(new_password, field="new_password")

        security = await self._verify(current_password)

        loop = asyncio.get_running_loop()
        new_salt = generate_salt(self.settings.security)
        old_key = await loop.run_in_executor(
            None, derive_key, current_password, security.key_salt, self.settings.security
        )
        new_key = await loop.run_in_executor(
            None, derive_key, new_password, new_salt, self.settings.security
        )
        try:
            payloads: Dict[str, EncryptedPayload] = {}
            for account in await self.repository.list_accounts():
                try:
                    plaintext = decrypt(account.ciphertext, old_key, account.iv, account.tag)
                except DecryptionError:
                    logger.error("Account does not decrypt, password not changed",
                                 account_id=account.account_id)
                    raise
                try:
                    payloads[account.account_id] = encrypt(plaintext, new_key, self.settings.security)
                finally:
                    plaintext[:] = bytes(len(plaintext))
        finally:
            old_key[:] = bytes(len(old_key))
            new_key[:] = bytes(len(new_key))

        password_hash = await loop.run_in_executor(None, get_password_hash, new_password)
        await self.repository.rotate_master_password(password_hash, new_salt, payloads)

        if self.vault.is_unlocked():
            self.vault.load_accounts(await self.key_loader.load_all_accounts(new_password))

        logger.info("Master password changed", reencrypted_accounts=len(payloads))
        return len(payloads)

    def lock(self) -> None:
        """Destroy all decrypted keys held by the vault."""
        self.vault.clear()
        logger.info("App locked - all sensitive data cleared from memory")

    async def status(self) -> VaultStatus:
        security = await self.repository.get_security()
        return VaultStatus(
            is_setup_complete=bool(security and security.is_setup_complete),
            state=self.vault.state,
            account_count=self.vault.account_count(),
            last_unlocked_at=security.last_unlocked_at if security else None,
        )

    async def import_account(self, name: str, address: str, signing_key: str,
                             password: str) -> AccountSummary:
        """Encrypt and persist an account; refresh the vault if it is unlocked."""
        security = await self._verify(password)

        loop = asyncio.get_running_loop()
        key = await loop.run_in_executor(
            None, derive_key, password, security.key_salt, self.settings.security
        )
        try:
            payload = encrypt(signing_key.encode("utf-8"), key, self.settings.security)
        finally:
            key[:] = bytes(len(key))

        account_id = str(uuid.uuid4())
        await self.repository.add_account(account_id, name, address, payload)

        if self.vault.is_unlocked():
            self.vault.load_accounts(await self.key_loader.load_all_accounts(password))

        logger.info("Account imported", account_id=account_id, address=address)
        return AccountSummary(account_id=account_id, account_name=name, address=address)
