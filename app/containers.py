# Application DI container: one instance of each service per process
from dependency_injector import containers, providers

from core.config.settings import Settings
from core.database.connection import DatabaseManager
from services.executions.registry import ExecutionRegistry
from services.executions.session import resolve_session_factory
from services.vault.credential_vault import CredentialVault
from services.vault.key_loader import AccountKeyLoader
from services.vault.repository import AccountRepository
from services.vault.service import VaultService


class AppContainer(containers.DeclarativeContainer):
    """Application dependency injection container"""

    # Configuration
    settings = providers.Singleton(Settings)

    # Account store
    db_manager = providers.Singleton(
        DatabaseManager,
        db_url=settings.provided.database.url,
        echo=settings.provided.database.echo,
        pool_size=settings.provided.database.pool_size,
        max_overflow=settings.provided.database.max_overflow,
        pool_recycle=settings.provided.database.pool_recycle,
    )

    account_repository = providers.Singleton(
        AccountRepository,
        db_manager=db_manager,
    )

    # In-memory vault; holds decrypted keys only while unlocked
    credential_vault = providers.Singleton(CredentialVault)

    key_loader = providers.Singleton(
        AccountKeyLoader,
        settings=settings,
        repository=account_repository,
    )

    vault_service = providers.Singleton(
        VaultService,
        settings=settings,
        vault=credential_vault,
        repository=account_repository,
        key_loader=key_loader,
    )

    # External trading-session constructor, None until configured
    session_factory = providers.Singleton(
        resolve_session_factory,
        settings.provided.executions.session_factory,
    )

    execution_registry = providers.Singleton(
        ExecutionRegistry,
        vault=credential_vault,
        session_factory=session_factory,
        key_loader=key_loader,
        settings=settings,
    )
