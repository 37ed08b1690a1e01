"""In-memory store of decrypted signing keys, gated by unlock/lock."""

from typing import AbstractSet, Dict, Iterable, List, Optional

from core.logging import get_audit_logger
from core.utils.exceptions import AppLockedError, ValidationError
from .models import CredentialEntry, VaultState

logger = get_audit_logger("credential_vault")


class CredentialVault:
    """Holds decrypted accounts only while the application is unlocked.

    All methods are synchronous. Under asyncio this makes every state
    transition atomic for readers: nothing can observe a half-loaded or
    half-cleared vault.
    """

    def __init__(self):
        self._entries: Dict[str, CredentialEntry] = {}
        self._state = VaultState.LOCKED

    @property
    def state(self) -> VaultState:
        return self._state

    def is_unlocked(self) -> bool:
        return self._state == VaultState.UNLOCKED

    def load_accounts(self, entries: Iterable[CredentialEntry]) -> None:
        """Replace the loaded accounts with ``entries`` and mark the vault unlocked.

        The vault takes ownership of the entries' key buffers. Keys from a
        previous unlock are wiped first.
        """
        incoming: Dict[str, CredentialEntry] = {}
        for entry in entries:
            if entry.account_id in incoming:
                raise ValidationError(
                    f"Duplicate account id in unlock batch: {entry.account_id}",
                    field="account_id",
                    value=entry.account_id,
                )
            incoming[entry.account_id] = entry

        kept = {id(entry.signing_key) for entry in incoming.values()}
        self._wipe_entries(keep=kept)
        self._entries = incoming
        self._state = VaultState.UNLOCKED
        logger.info("Loaded accounts into memory", account_count=len(incoming))

    def get_account(self, account_id: str) -> Optional[CredentialEntry]:
        """Return the entry for ``account_id``, or None if it is not loaded.

        Raises:
            AppLockedError: the vault is locked.
        """
        self._require_unlocked()
        return self._entries.get(account_id)

    def get_all_accounts(self) -> List[CredentialEntry]:
        self._require_unlocked()
        return list(self._entries.values())

    def account_count(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        """Wipe every key, drop all entries and lock. No-op when already locked."""
        was_unlocked = self.is_unlocked()
        self._wipe_entries()
        self._state = VaultState.LOCKED
        if was_unlocked:
            logger.info("Cleared all keys from memory")

    def _wipe_entries(self, keep: AbstractSet[int] = frozenset()) -> None:
        # ``keep`` holds ids of key buffers that are being re-installed
        for entry in self._entries.values():
            if id(entry.signing_key) not in keep:
                entry.wipe()
        self._entries = {}

    def _require_unlocked(self) -> None:
        if self._state != VaultState.UNLOCKED:
            raise AppLockedError()
