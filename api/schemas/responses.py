from pydantic import BaseModel, Field
from typing import Generic, TypeVar, List, Optional, Any, Dict
from datetime import datetime, timezone

from services.executions.models import ExecutionRecord

T = TypeVar('T')


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StandardResponse(BaseModel, Generic[T]):
    """Standard API response wrapper"""
    status: str = Field("success", description="Response status")
    message: Optional[str] = Field(None, description="Response message")
    data: Optional[T] = Field(None, description="Response data")
    timestamp: datetime = Field(default_factory=_utcnow)


class ErrorResponse(BaseModel):
    """Error response model"""
    error: str
    message: str
    details: Optional[Dict[str, Any]] = None
    timestamp: datetime = Field(default_factory=_utcnow)
    # Set when a close failed after the execution was already removed
    removed: Optional[bool] = None


# Execution Responses
class ChainConfigInfo(BaseModel):
    chain_name: str
    account_id: str


class ExecutionInfo(BaseModel):
    execution_id: str
    strategy_id: str
    execution_type: str
    chain_configs: List[ChainConfigInfo]
    key_source: str
    status: str
    created_at: datetime

    @classmethod
    def from_record(cls, record: ExecutionRecord) -> "ExecutionInfo":
        return cls.model_validate(record.to_dict())


class ExecutionStarted(BaseModel):
    execution_id: str


class ExecutionListResponse(BaseModel):
    executions: List[ExecutionInfo]
    count: int


class ExecutionClosed(BaseModel):
    execution_id: str
    result: Optional[Any] = None


# Security Responses
class LockResult(BaseModel):
    closed_executions: int = 0


class PasswordValidationResult(BaseModel):
    is_valid: bool
    errors: List[str] = []


class PasswordChanged(BaseModel):
    reencrypted_accounts: int
