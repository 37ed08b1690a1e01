from .models import ChainConfig, ExecutionRecord, ExecutionStatus, KeySource
from .registry import ExecutionRegistry
from .session import (
    SessionFactory,
    TradingSession,
    load_session_factory,
    resolve_session_factory,
)

__all__ = [
    "ChainConfig",
    "ExecutionRecord",
    "ExecutionStatus",
    "KeySource",
    "ExecutionRegistry",
    "SessionFactory",
    "TradingSession",
    "load_session_factory",
    "resolve_session_factory",
]
