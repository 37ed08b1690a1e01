from fastapi import APIRouter, Depends, status
from typing import List

from api.dependencies import get_client_ip, get_credential_vault, get_vault_service
from api.schemas.requests import ImportAccountRequest
from api.schemas.responses import StandardResponse
from core.logging import get_audit_logger
from services.vault.credential_vault import CredentialVault
from services.vault.models import AccountSummary
from services.vault.service import VaultService

router = APIRouter(prefix="/accounts", tags=["Accounts"])

audit_logger = get_audit_logger("accounts_audit")


@router.get("", response_model=StandardResponse[List[AccountSummary]])
async def list_accounts(
    vault: CredentialVault = Depends(get_credential_vault),
):
    """Accounts loaded in the vault. Public fields only; 423 while locked."""
    accounts = [AccountSummary(**entry.to_public_dict()) for entry in vault.get_all_accounts()]
    return StandardResponse(data=accounts)


@router.post("", response_model=StandardResponse[AccountSummary],
             status_code=status.HTTP_201_CREATED)
async def import_account(
    body: ImportAccountRequest,
    client_ip: str = Depends(get_client_ip),
    vault_service: VaultService = Depends(get_vault_service),
):
    """Encrypt a signing key under the master password and store it."""
    summary = await vault_service.import_account(
        name=body.name,
        address=body.address,
        signing_key=body.signing_key.get_secret_value(),
        password=body.password.get_secret_value(),
    )
    audit_logger.info("Account imported", client_ip=client_ip,
                      account_id=summary.account_id, action="ACCOUNT_IMPORT")
    return StandardResponse(message="Account imported", data=summary)
