"""Contract for the externally supplied trading session."""

import importlib
from typing import Any, Callable, Dict, Optional, Protocol, runtime_checkable

from core.utils.exceptions import ConfigurationError
from services.vault.secret_bytes import SecretBytes


@runtime_checkable
class TradingSession(Protocol):
    async def initialize(self) -> None:
        ...

    async def close(self) -> Any:
        ...


# create_session(execution_id, strategy_id, execution_type, chain_keys) -> session
SessionFactory = Callable[[str, str, str, Dict[str, SecretBytes]], TradingSession]


def load_session_factory(path: str) -> SessionFactory:
    """Import a session factory from a ``"package.module:attribute"`` path."""
    if not path or ":" not in path:
        raise ConfigurationError(
            "Session factory must be given as 'module:attribute'",
            config_field="executions.session_factory",
            config_value=path,
        )

    module_name, _, attr = path.partition(":")
    try:
        module = importlib.import_module(module_name)
        factory = getattr(module, attr)
    except (ImportError, AttributeError) as e:
        raise ConfigurationError(
            f"Cannot load session factory {path}: {e}",
            config_field="executions.session_factory",
            config_value=path,
        ) from e

    if not callable(factory):
        raise ConfigurationError(
            f"Session factory {path} is not callable",
            config_field="executions.session_factory",
            config_value=path,
        )
    return factory


def resolve_session_factory(path: str) -> Optional[SessionFactory]:
    """Like ``load_session_factory`` but returns None when no path is configured."""
    if not path:
        return None
    return load_session_factory(path)
