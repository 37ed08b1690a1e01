from fastapi import APIRouter, Depends

from api.dependencies import get_client_ip, get_execution_registry, get_settings, get_vault_service
from api.schemas.requests import ChangePasswordRequest, PasswordRequest
from api.schemas.responses import LockResult, PasswordChanged, PasswordValidationResult, StandardResponse
from core.config.settings import Settings
from core.logging import get_api_logger, get_audit_logger
from services.executions.registry import ExecutionRegistry
from services.vault.models import UnlockResult, VaultStatus
from services.vault.service import VaultService

router = APIRouter(prefix="/security", tags=["Security"])

api_logger = get_api_logger("security_api")
audit_logger = get_audit_logger("security_audit")


@router.get("/status", response_model=StandardResponse[VaultStatus])
async def get_security_status(
    vault_service: VaultService = Depends(get_vault_service),
):
    """Setup and lock state of the vault."""
    return StandardResponse(data=await vault_service.status())


@router.post("/setup", response_model=StandardResponse[None])
async def setup_password(
    body: PasswordRequest,
    client_ip: str = Depends(get_client_ip),
    vault_service: VaultService = Depends(get_vault_service),
):
    """
    Set the master password. Only allowed once.
    """
    await vault_service.setup_password(body.password.get_secret_value())
    audit_logger.info("Master password set up", client_ip=client_ip, action="SECURITY_SETUP")
    return StandardResponse(message="Password setup complete")


@router.post("/validate-password", response_model=StandardResponse[PasswordValidationResult])
async def validate_password(
    body: PasswordRequest,
    vault_service: VaultService = Depends(get_vault_service),
):
    """Check a candidate password against the strength rules without saving it."""
    errors = vault_service.validate_password(body.password.get_secret_value())
    return StandardResponse(data=PasswordValidationResult(is_valid=not errors, errors=errors))


@router.post("/change-password", response_model=StandardResponse[PasswordChanged])
async def change_password(
    body: ChangePasswordRequest,
    client_ip: str = Depends(get_client_ip),
    vault_service: VaultService = Depends(get_vault_service),
):
    """
    Rotate the master password. Every stored account is re-encrypted under
    the new key.
    """
    count = await vault_service.change_password(
        body.current_password.get_secret_value(),
        body.new_password.get_secret_value(),
    )
    audit_logger.info("Master password changed",
                      client_ip=client_ip,
                      reencrypted_accounts=count,
                      action="SECURITY_CHANGE_PASSWORD")
    return StandardResponse(message="Password changed successfully",
                            data=PasswordChanged(reencrypted_accounts=count))


@router.post("/unlock", response_model=StandardResponse[UnlockResult])
async def unlock(
    body: PasswordRequest,
    client_ip: str = Depends(get_client_ip),
    vault_service: VaultService = Depends(get_vault_service),
):
    """
    Verify the master password and decrypt all accounts into memory.
    """
    result = await vault_service.unlock(body.password.get_secret_value())
    audit_logger.info("App unlocked",
                      client_ip=client_ip,
                      loaded_accounts=result.loaded_accounts,
                      action="SECURITY_UNLOCK")
    return StandardResponse(message="App unlocked successfully", data=result)


@router.post("/lock", response_model=StandardResponse[LockResult])
async def lock(
    client_ip: str = Depends(get_client_ip),
    settings: Settings = Depends(get_settings),
    vault_service: VaultService = Depends(get_vault_service),
    registry: ExecutionRegistry = Depends(get_execution_registry),
):
    """
    Wipe decrypted keys from memory. Running executions keep their own key
    copies unless ``executions.close_on_lock`` is enabled.
    """
    closed = 0
    if settings.executions.close_on_lock:
        closed = registry.get_execution_count()
        await registry.cleanup()

    vault_service.lock()
    audit_logger.info("App locked", client_ip=client_ip,
                      closed_executions=closed, action="SECURITY_LOCK")
    api_logger.info("Lock request completed", client_ip=client_ip)
    return StandardResponse(message="App locked", data=LockResult(closed_executions=closed))
