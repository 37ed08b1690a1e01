"""Vault models: credential entries, vault state and API payloads."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .secret_bytes import SecretBytes


class VaultState(str, Enum):
    """Whether decrypted signing material is currently held in memory."""
    LOCKED = "locked"
    UNLOCKED = "unlocked"


@dataclass(frozen=True)
class CredentialEntry:
    """A decrypted account. Only ``signing_key`` is secret."""
    account_id: str
    account_name: str
    address: str
    signing_key: SecretBytes

    def wipe(self) -> None:
        self.signing_key.wipe()

    def to_public_dict(self) -> Dict[str, Any]:
        """Fields safe to log or serialize."""
        return {
            "account_id": self.account_id,
            "account_name": self.account_name,
            "address": self.address,
        }


@dataclass(frozen=True)
class EncryptedAccount:
    """Persisted account tuple as read from the account store."""
    account_id: str
    name: str
    address: str
    ciphertext: str
    iv: str
    tag: str


@dataclass(frozen=True)
class SecurityRecord:
    """Master password hash and key-derivation salt."""
    password_hash: Optional[str]
    key_salt: Optional[str]
    is_setup_complete: bool
    last_unlocked_at: Optional[datetime] = None


class AccountSummary(BaseModel):
    """Public view of a loaded account."""
    account_id: str
    account_name: str
    address: str


class VaultStatus(BaseModel):
    """Current vault state for status endpoints."""
    is_setup_complete: bool
    state: VaultState
    account_count: int = Field(0, description="Accounts currently decrypted in memory")
    last_unlocked_at: Optional[datetime] = None


class UnlockResult(BaseModel):
    loaded_accounts: int
    accounts: List[AccountSummary] = []
