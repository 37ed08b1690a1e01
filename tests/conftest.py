"""
Pytest configuration and shared fixtures for DeltaDesk tests.
"""
import asyncio
import pytest
from datetime import datetime, timezone
from typing import Dict, List, Optional

from core.config.settings import Settings, ExecutionSettings, SecuritySettings
from services.vault.models import CredentialEntry, EncryptedAccount, SecurityRecord
from services.vault.secret_bytes import SecretBytes
from services.vault.security import EncryptedPayload, derive_key, encrypt, generate_salt, get_password_hash

MASTER_PASSWORD = "Str0ng!Passw0rd"

# Hex private keys, 32 bytes each
KEY_ONE = "0x" + "11" * 32
KEY_TWO = "0x" + "22" * 32


@pytest.fixture
def test_settings():
    """Test settings configuration."""
    return Settings(
        environment="testing",
        security=SecuritySettings(pbkdf2_iterations=1_000),
        executions=ExecutionSettings(cleanup_timeout_seconds=2.0),
    )


class FakeAccountRepository:
    """In-memory stand-in for AccountRepository."""

    def __init__(self):
        self.security: Optional[SecurityRecord] = None
        self.accounts: Dict[str, EncryptedAccount] = {}
        self.unlock_count = 0
        self.fail_rotation: Optional[Exception] = None

    async def get_security(self) -> Optional[SecurityRecord]:
        return self.security

    async def save_security(self, password_hash: str, key_salt: str) -> None:
        self.security = SecurityRecord(
            password_hash=password_hash,
            key_salt=key_salt,
            is_setup_complete=True,
        )

    async def mark_unlocked(self) -> None:
        self.unlock_count += 1
        if self.security is not None:
            self.security = SecurityRecord(
                password_hash=self.security.password_hash,
                key_salt=self.security.key_salt,
                is_setup_complete=True,
                last_unlocked_at=datetime.now(timezone.utc),
            )

    async def rotate_master_password(self, password_hash: str, key_salt: str,
                                     payloads: Dict[str, EncryptedPayload]) -> None:
        if self.fail_rotation is not None:
            raise self.fail_rotation
        self.security = SecurityRecord(
            password_hash=password_hash,
            key_salt=key_salt,
            is_setup_complete=True,
            last_unlocked_at=self.security.last_unlocked_at if self.security else None,
        )
        for account_id, payload in payloads.items():
            account = self.accounts[account_id]
            self.accounts[account_id] = EncryptedAccount(
                account_id=account_id,
                name=account.name,
                address=account.address,
                ciphertext=payload.ciphertext,
                iv=payload.iv,
                tag=payload.tag,
            )

    async def list_accounts(self) -> List[EncryptedAccount]:
        return list(self.accounts.values())

    async def get_account(self, account_id: str) -> Optional[EncryptedAccount]:
        return self.accounts.get(account_id)

    async def add_account(self, account_id: str, name: str, address: str,
                          payload: EncryptedPayload) -> None:
        self.accounts[account_id] = EncryptedAccount(
            account_id=account_id,
            name=name,
            address=address,
            ciphertext=payload.ciphertext,
            iv=payload.iv,
            tag=payload.tag,
        )


@pytest.fixture
def master_password():
    return MASTER_PASSWORD


@pytest.fixture
def fake_repository():
    return FakeAccountRepository()


@pytest.fixture
def seeded_repository(test_settings):
    """Repository with a master password and two encrypted accounts."""
    repo = FakeAccountRepository()
    salt = generate_salt(test_settings.security)
    repo.security = SecurityRecord(
        password_hash=get_password_hash(MASTER_PASSWORD),
        key_salt=salt,
        is_setup_complete=True,
    )

    key = derive_key(MASTER_PASSWORD, salt, test_settings.security)
    for account_id, name, address, signing_key in (
        ("acc1", "Main", "0x" + "aa" * 20, KEY_ONE),
        ("acc2", "Hedge", "0x" + "bb" * 20, KEY_TWO),
    ):
        payload = encrypt(signing_key.encode("utf-8"), key, test_settings.security)
        repo.accounts[account_id] = EncryptedAccount(
            account_id=account_id,
            name=name,
            address=address,
            ciphertext=payload.ciphertext,
            iv=payload.iv,
            tag=payload.tag,
        )
    return repo


@pytest.fixture
def make_entry():
    """Factory for decrypted credential entries."""
    def _make(account_id: str, signing_key: str = "k1", address: str = "0xAAA") -> CredentialEntry:
        return CredentialEntry(
            account_id=account_id,
            account_name=f"{account_id}-name",
            address=address,
            signing_key=SecretBytes(signing_key),
        )
    return _make


class FakeSession:
    """Trading session double recording its lifecycle."""

    def __init__(self, execution_id: str, strategy_id: str, execution_type: str,
                 chain_keys: Dict[str, SecretBytes]):
        self.execution_id = execution_id
        self.strategy_id = strategy_id
        self.execution_type = execution_type
        self.chain_keys = chain_keys
        self.initialized = False
        self.close_calls = 0
        self.fail_initialize: Optional[Exception] = None
        self.fail_close: Optional[Exception] = None
        self.close_delay: float = 0.0

    async def initialize(self) -> None:
        if self.fail_initialize is not None:
            raise self.fail_initialize
        self.initialized = True

    async def close(self):
        self.close_calls += 1
        if self.close_delay:
            await asyncio.sleep(self.close_delay)
        if self.fail_close is not None:
            raise self.fail_close
        return {"execution_id": self.execution_id, "settled": True}


class RecordingSessionFactory:
    """Session factory that keeps every session it builds.

    ``configure`` runs on each new session before it is returned, so tests
    can inject failures.
    """

    def __init__(self):
        self.sessions: List[FakeSession] = []
        self.configure = None
        self.raise_on_create: Optional[Exception] = None

    def __call__(self, execution_id, strategy_id, execution_type, chain_keys):
        if self.raise_on_create is not None:
            raise self.raise_on_create
        session = FakeSession(execution_id, strategy_id, execution_type, chain_keys)
        if self.configure is not None:
            self.configure(session)
        self.sessions.append(session)
        return session


@pytest.fixture
def session_factory():
    return RecordingSessionFactory()
