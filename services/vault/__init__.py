"""In-memory credential vault with master-password unlock/lock."""

from .credential_vault import CredentialVault
from .key_loader import AccountKeyLoader
from .repository import AccountRepository
from .secret_bytes import SecretBytes
from .service import VaultService
from .models import (
    AccountSummary,
    CredentialEntry,
    EncryptedAccount,
    SecurityRecord,
    UnlockResult,
    VaultState,
    VaultStatus,
)

__all__ = [
    "CredentialVault",
    "AccountKeyLoader",
    "AccountRepository",
    "SecretBytes",
    "VaultService",
    "AccountSummary",
    "CredentialEntry",
    "EncryptedAccount",
    "SecurityRecord",
    "UnlockResult",
    "VaultState",
    "VaultStatus",
]
