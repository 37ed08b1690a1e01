# services/executions/registry.py

import asyncio
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from core.config.settings import ExecutionSettings, Settings
from core.logging import get_trading_logger
from core.utils.exceptions import (
    AccountNotFoundError,
    ConfigurationError,
    ExecutionNotFoundError,
    SessionCloseFailedError,
    ValidationError,
    create_error_context,
)
from core.utils.ids import generate_execution_id
from services.vault.credential_vault import CredentialVault
from services.vault.key_loader import AccountKeyLoader
from services.vault.secret_bytes import SecretBytes
from .models import ChainConfig, ExecutionRecord, ExecutionStatus, KeySource
from .session import SessionFactory

logger = get_trading_logger("execution_registry")


def _wipe_keys(chain_keys: Dict[str, SecretBytes]) -> None:
    for key in chain_keys.values():
        key.wipe()


class ExecutionRegistry:
    """Live trading sessions keyed by execution id.

    Sessions receive copies of the signing keys they need. The registry
    itself keeps no key material, so locking the vault leaves running
    sessions untouched.
    """

    def __init__(self, vault: CredentialVault,
                 session_factory: Optional[SessionFactory] = None,
                 key_loader: Optional[AccountKeyLoader] = None,
                 settings: Optional[Settings] = None):
        self.vault = vault
        self.session_factory = session_factory
        self.key_loader = key_loader
        self.execution_settings = settings.executions if settings else ExecutionSettings()
        self._executions: Dict[str, ExecutionRecord] = {}
        # Ids handed out to executions that are still initializing
        self._reserved: Set[str] = set()

    async def initialize_execution(self, execution_type: str, strategy_id: str,
                                   chain_configs: Iterable[ChainConfig]) -> str:
        """Start an execution with keys taken from the unlocked vault.

        Raises:
            AppLockedError: the vault is locked.
            AccountNotFoundError: an account id is not loaded in the vault.
            ValidationError: chain configs repeat a chain name.
            ConfigurationError: no session factory is configured.
        """
        configs = self._validate_chain_configs(chain_configs)
        factory = self._require_session_factory()

        # Copies are taken before the first await; a concurrent lock
        # cannot wipe them.
        chain_keys = self._copy_keys_from_vault(configs)
        return await self._start_execution(
            factory, execution_type, strategy_id, configs, chain_keys, KeySource.VAULT
        )

    async def initialize_execution_with_password(self, execution_type: str, strategy_id: str,
                                                 chain_configs: Iterable[ChainConfig],
                                                 password: str) -> str:
        """Start an execution by decrypting only the named accounts.

        The shared vault is neither read nor updated.

        Raises:
            AccountNotFoundError: an account id is not stored.
            InvalidPasswordError: the password does not decrypt an account.
            ValidationError: chain configs repeat a chain name.
            ConfigurationError: no session factory or key loader is configured.
        """
        configs = self._validate_chain_configs(chain_configs)
        factory = self._require_session_factory()
        if self.key_loader is None:
            raise ConfigurationError(
                "Password-based execution requires an account key loader",
                config_field="key_loader",
                config_value=None,
            )

        chain_keys: Dict[str, SecretBytes] = {}
        try:
            for config in configs:
                entry = await self.key_loader.load_account(config.account_id, password)
                chain_keys[config.chain_name] = entry.signing_key
        except BaseException:
            _wipe_keys(chain_keys)
            raise

        return await self._start_execution(
            factory, execution_type, strategy_id, configs, chain_keys, KeySource.PASSWORD
        )

    def get_execution(self, execution_id: str) -> Optional[ExecutionRecord]:
        return self._executions.get(execution_id)

    async def close_execution(self, execution_id: str) -> Any:
        """Remove the execution and close its session.

        The record is removed before the session is closed, so a second
        close of the same id fails with ExecutionNotFoundError even while
        the first is still running. A failing session close still leaves
        the record removed.

        Raises:
            ExecutionNotFoundError: the id is not registered.
            SessionCloseFailedError: the session's close raised.
        """
        record = self._executions.pop(execution_id, None)
        if record is None:
            raise ExecutionNotFoundError(execution_id)

        try:
            result = await record.session.close()
        except Exception as e:
            logger.error("Session close failed, execution removed",
                         **create_error_context(e, "close_execution",
                                                {"execution_id": execution_id}))
            raise SessionCloseFailedError(execution_id, e) from e
        finally:
            record.status = ExecutionStatus.CLOSED

        logger.info("Execution closed", execution_id=execution_id,
                    strategy_id=record.strategy_id)
        return result

    def get_active_executions(self) -> List[str]:
        return list(self._executions.keys())

    def get_execution_count(self) -> int:
        return len(self._executions)

    async def cleanup(self) -> None:
        """Close every execution concurrently.

        Individual failures are logged, not raised. The whole pass is
        bounded by ``executions.cleanup_timeout_seconds``.
        """
        execution_ids = self.get_active_executions()
        if not execution_ids:
            return

        logger.info("Closing all executions", count=len(execution_ids))
        gathered = asyncio.gather(
            *(self.close_execution(execution_id) for execution_id in execution_ids),
            return_exceptions=True,
        )
        timeout = self.execution_settings.cleanup_timeout_seconds
        try:
            results = await asyncio.wait_for(gathered, timeout=timeout)
        except asyncio.TimeoutError:
            logger.error("Timed out closing executions",
                         timeout_seconds=timeout, execution_ids=execution_ids)
            return

        failed = 0
        for execution_id, result in zip(execution_ids, results):
            if isinstance(result, BaseException):
                failed += 1
                logger.error("Failed to close execution during cleanup",
                             execution_id=execution_id, error=str(result))
        logger.info("Execution cleanup complete",
                    closed=len(execution_ids) - failed, failed=failed)

    def _validate_chain_configs(self, chain_configs: Iterable[ChainConfig]) -> Tuple[ChainConfig, ...]:
        configs = tuple(chain_configs)
        seen: Set[str] = set()
        for config in configs:
            if config.chain_name in seen:
                raise ValidationError(f"Duplicate chain name: {config.chain_name}",
                                      field="chain_configs", value=config.chain_name)
            seen.add(config.chain_name)
        return configs

    def _require_session_factory(self) -> SessionFactory:
        if self.session_factory is None:
            raise ConfigurationError(
                "No session factory configured",
                config_field="executions.session_factory",
                config_value=None,
            )
        return self.session_factory

    def _copy_keys_from_vault(self, configs: Tuple[ChainConfig, ...]) -> Dict[str, SecretBytes]:
        chain_keys: Dict[str, SecretBytes] = {}
        try:
            for config in configs:
                entry = self.vault.get_account(config.account_id)
                if entry is None:
                    raise AccountNotFoundError(config.account_id)
                chain_keys[config.chain_name] = entry.signing_key.copy()
        except BaseException:
            _wipe_keys(chain_keys)
            raise
        return chain_keys

    def _new_execution_id(self) -> str:
        execution_id = generate_execution_id()
        while execution_id in self._executions or execution_id in self._reserved:
            execution_id = generate_execution_id()
        return execution_id

    async def _start_execution(self, factory: SessionFactory, execution_type: str,
                               strategy_id: str, configs: Tuple[ChainConfig, ...],
                               chain_keys: Dict[str, SecretBytes], key_source: KeySource) -> str:
        execution_id = self._new_execution_id()
        self._reserved.add(execution_id)
        try:
            session = factory(execution_id, strategy_id, execution_type, chain_keys)
            record = ExecutionRecord(
                execution_id=execution_id,
                strategy_id=strategy_id,
                execution_type=execution_type,
                session=session,
                chain_configs=configs,
                key_source=key_source,
            )
            await session.initialize()
        except BaseException as e:
            _wipe_keys(chain_keys)
            logger.error("Failed to initialize execution",
                         **create_error_context(e, "initialize_execution",
                                                {"execution_id": execution_id,
                                                 "strategy_id": strategy_id}))
            raise
        finally:
            self._reserved.discard(execution_id)

        record.status = ExecutionStatus.ACTIVE
        self._executions[execution_id] = record
        logger.info("Execution initialized",
                    execution_id=execution_id,
                    strategy_id=strategy_id,
                    execution_type=execution_type,
                    key_source=key_source.value,
                    chains=[c.chain_name for c in configs])
        return execution_id
