"""Execution registry models."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Tuple


@dataclass(frozen=True)
class ChainConfig:
    """Binds one chain of an execution to the account that signs on it."""
    chain_name: str
    account_id: str

    def to_dict(self) -> Dict[str, str]:
        return {"chain_name": self.chain_name, "account_id": self.account_id}


class ExecutionStatus(str, Enum):
    CREATED = "created"
    ACTIVE = "active"
    CLOSED = "closed"


class KeySource(str, Enum):
    """Where an execution's signing keys were resolved from."""
    VAULT = "vault"
    PASSWORD = "password"


@dataclass
class ExecutionRecord:
    execution_id: str
    strategy_id: str
    execution_type: str
    session: Any
    chain_configs: Tuple[ChainConfig, ...]
    key_source: KeySource
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    status: ExecutionStatus = ExecutionStatus.CREATED

    def to_dict(self) -> Dict[str, Any]:
        """Serializable view; the session object is never included."""
        return {
            "execution_id": self.execution_id,
            "strategy_id": self.strategy_id,
            "execution_type": self.execution_type,
            "chain_configs": [c.to_dict() for c in self.chain_configs],
            "key_source": self.key_source.value,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
        }
