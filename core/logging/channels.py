"""
Logging channel definitions for DeltaDesk.
Each channel can be routed to its own rotating log file.
"""

from enum import Enum
from typing import Dict
from pathlib import Path
from dataclasses import dataclass


class LogChannel(str, Enum):
    """Logging channels for different components."""

    APPLICATION = "application"  # General application logs
    TRADING = "trading"          # Execution lifecycle
    DATABASE = "database"        # Account store operations
    API = "api"                  # API requests/responses
    AUDIT = "audit"              # Unlock/lock and key access trail
    ERROR = "error"              # Error logs


@dataclass
class ChannelConfig:
    """Configuration for a logging channel."""

    name: str
    filename: str
    level: str = "INFO"

    def get_file_path(self, logs_dir: str) -> Path:
        """Get the full file path for this channel."""
        return Path(logs_dir) / self.filename


CHANNEL_CONFIGS: Dict[LogChannel, ChannelConfig] = {
    LogChannel.APPLICATION: ChannelConfig(name="application", filename="application.log"),
    LogChannel.TRADING: ChannelConfig(name="trading", filename="trading.log"),
    LogChannel.DATABASE: ChannelConfig(name="database", filename="database.log", level="WARNING"),
    LogChannel.API: ChannelConfig(name="api", filename="api.log"),
    LogChannel.AUDIT: ChannelConfig(name="audit", filename="audit.log"),
    LogChannel.ERROR: ChannelConfig(name="error", filename="error.log", level="ERROR"),
}

# Component name -> channel
COMPONENT_CHANNEL_MAPPING: Dict[str, LogChannel] = {
    "vault": LogChannel.AUDIT,
    "security": LogChannel.AUDIT,
    "executions": LogChannel.TRADING,
    "registry": LogChannel.TRADING,
    "database": LogChannel.DATABASE,
    "api": LogChannel.API,
}


def get_channel_config(channel: LogChannel) -> ChannelConfig:
    """Get configuration for a specific channel."""
    return CHANNEL_CONFIGS[channel]


def get_channel_for_component(component: str) -> LogChannel:
    """Get the appropriate channel for a component."""
    return COMPONENT_CHANNEL_MAPPING.get(component, LogChannel.APPLICATION)
