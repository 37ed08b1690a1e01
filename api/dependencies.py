from fastapi import Depends, Request
from dependency_injector.wiring import inject, Provide

from app.containers import AppContainer
from core.config.settings import Settings
from services.executions.registry import ExecutionRegistry
from services.vault.credential_vault import CredentialVault
from services.vault.service import VaultService


@inject
def get_settings(
    settings: Settings = Depends(Provide[AppContainer.settings])
) -> Settings:
    """Get application settings for API endpoints"""
    return settings


@inject
def get_vault_service(
    vault_service: VaultService = Depends(Provide[AppContainer.vault_service])
) -> VaultService:
    return vault_service


@inject
def get_credential_vault(
    vault: CredentialVault = Depends(Provide[AppContainer.credential_vault])
) -> CredentialVault:
    return vault


@inject
def get_execution_registry(
    registry: ExecutionRegistry = Depends(Provide[AppContainer.execution_registry])
) -> ExecutionRegistry:
    return registry


def get_client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"
