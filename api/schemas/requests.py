from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator
from typing import List, Optional

from services.executions.models import ChainConfig


class _Request(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


class PasswordRequest(_Request):
    """Body for setup, unlock and strength checks"""
    password: SecretStr = Field(..., description="Master password")

    @field_validator('password')
    @classmethod
    def validate_not_empty(cls, v: SecretStr) -> SecretStr:
        if not v.get_secret_value():
            raise ValueError("Password is required")
        return v


class ChangePasswordRequest(_Request):
    current_password: SecretStr = Field(..., description="Current master password")
    new_password: SecretStr = Field(..., description="New master password")

    ('current_password', 'new_password')
    
    def validate_not_empty(cls, v: SecretStr) -> SecretStr:
        if not v.get_secret_value():
            raise ValueError("Password is required")
        return v


class ImportAccountRequest(_Request):
    name: str = Field(..., min_length=1, max_length=100)
    address: str = Field(..., pattern=r"^0x[0-9a-fA-F]{40}$", description="EVM address")
    signing_key: SecretStr = Field(..., description="Hex private key")
    password: SecretStr = Field(..., description="Master password")

    @field_validator('signing_key')
    @classmethod
    def validate_signing_key(cls, v: SecretStr) -> SecretStr:
        raw = v.get_secret_value()
        digits = raw[2:] if raw.startswith("0x") else raw
        if len(digits) != 64 or any(c not in "0123456789abcdefABCDEF" for c in digits):
            raise ValueError("Signing key must be 32 bytes of hex")
        return v


class ChainConfigRequest(_Request):
    chain_name: str = Field(..., min_length=1, max_length=64)
    account_id: str = Field(..., min_length=1, max_length=64)

    def to_chain_config(self) -> ChainConfig:
        return ChainConfig(chain_name=self.chain_name, account_id=self.account_id)


class StartExecutionRequest(_Request):
    """Start an execution.

    Without ``password`` keys come from the unlocked vault. With it, only the
    named accounts are decrypted for this execution and the vault is untouched.
    """
    execution_type: str = Field(..., min_length=1, max_length=64)
    strategy_id: str = Field(..., min_length=1, max_length=128)
    chain_configs: List[ChainConfigRequest] = Field(..., min_length=1)
    password: Optional[SecretStr] = None

    @field_validator('chain_configs')
    @classmethod
    def validate_unique_chains(cls, v: List[ChainConfigRequest]) -> List[ChainConfigRequest]:
        names = [c.chain_name for c in v]
        if len(set(names)) != len(names):
            raise ValueError("Each chain may appear only once")
        return v

    def to_chain_configs(self) -> List[ChainConfig]:
        return [c.to_chain_config() for c in self.chain_configs]
