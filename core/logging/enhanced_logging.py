# Structured logging with multi-channel support and secret redaction
import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Dict, Iterable, Optional

import structlog

from core.config.settings import Settings
from .channels import LogChannel, get_channel_config, get_channel_for_component

REDACTED = "[REDACTED]"

DEFAULT_REDACT_KEYS = (
    "authorization", "password", "secret", "signing_key", "private_key",
    "encryption_key", "token",
)

_logger_manager: Optional["EnhancedLoggerManager"] = None


def build_redaction_processor(keys: Iterable[str]):
    """Return a structlog processor masking values under secret-bearing keys."""
    keys_to_redact = {k.lower() for k in keys}

    def _redact(obj):
        if isinstance(obj, dict):
            out = {}
            for k, v in obj.items():
                if isinstance(k, str) and k.lower() in keys_to_redact:
                    out[k] = REDACTED
                else:
                    out[k] = _redact(v)
            return out
        if isinstance(obj, list):
            return [_redact(v) for v in obj]
        return obj

    def redact_sensitive(logger, name, event_dict):
        return _redact(event_dict)

    return redact_sensitive


class ChannelFilter(logging.Filter):
    """Pass records whose structlog event carries the given channel.

    Records without a channel (plain stdlib loggers) belong to the
    application channel. The error channel also takes every ERROR record.
    """

    def __init__(self, channel: LogChannel):
        super().__init__()
        self.channel = channel

    def filter(self, record: logging.LogRecord) -> bool:
        event = record.msg if isinstance(record.msg, dict) else {}
        channel = event.get("channel")
        if channel is None and event.get("component"):
            channel = get_channel_for_component(event["component"]).value
        if channel is None:
            channel = LogChannel.APPLICATION.value

        if self.channel == LogChannel.ERROR and record.levelno >= logging.ERROR:
            return True
        return channel == self.channel.value


class EnhancedLoggerManager:
    """Logging manager wiring structlog onto stdlib handlers."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.channel_handlers: Dict[LogChannel, logging.Handler] = {}
        self.configured_loggers: Dict[str, structlog.BoundLogger] = {}

        self._setup_logging()

    def _setup_logging(self) -> None:
        logging.getLogger().setLevel(getattr(logging, self.settings.logging.level.upper()))

        if self.settings.logging.console_enabled:
            self._setup_console_logging()

        if self.settings.logging.file_enabled:
            Path(self.settings.logs_dir).mkdir(parents=True, exist_ok=True)
            root_logger = logging.getLogger()
            for channel in LogChannel:
                handler = self._create_channel_handler(channel)
                root_logger.addHandler(handler)
                self.channel_handlers[channel] = handler

        self._configure_structlog()

    def _formatter(self, json_format: bool) -> logging.Formatter:
        foreign_chain = [
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
        ]
        renderer = (
            structlog.processors.JSONRenderer()
            if json_format
            else structlog.dev.ConsoleRenderer()
        )
        return structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=foreign_chain,
        )

    def _setup_console_logging(self) -> None:
        root_logger = logging.getLogger()
        level = getattr(logging, self.settings.logging.level.upper())

        # Reuse a stdout handler someone else (e.g. uvicorn) already attached
        for handler in root_logger.handlers:
            if isinstance(handler, logging.StreamHandler) and getattr(handler, "stream", None) == sys.stdout:
                handler.setLevel(level)
                handler.setFormatter(self._formatter(self.settings.logging.console_json_format))
                return

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(self._formatter(self.settings.logging.console_json_format))
        root_logger.addHandler(console_handler)

    def _create_channel_handler(self, channel: LogChannel) -> logging.Handler:
        config = get_channel_config(channel)
        handler = logging.handlers.RotatingFileHandler(
            config.get_file_path(self.settings.logs_dir),
            maxBytes=self.settings.logging.file_max_bytes,
            backupCount=self.settings.logging.file_backup_count,
            encoding="utf-8",
        )
        handler.setLevel(getattr(logging, config.level.upper()))
        handler.setFormatter(self._formatter(self.settings.logging.json_format))
        handler.addFilter(ChannelFilter(channel))
        return handler

    def _configure_structlog(self) -> None:
        """Configure structlog with appropriate processors."""

        def add_standard_context(logger, name, event_dict):
            event_dict.setdefault("env", self.settings.environment.value)
            event_dict.setdefault("service", self.settings.app_name)
            return event_dict

        processors = [
            structlog.contextvars.merge_contextvars,
            add_standard_context,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            build_redaction_processor(self.settings.logging.redact_keys or DEFAULT_REDACT_KEYS),
            # Defer final rendering to handlers via ProcessorFormatter
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ]

        structlog.configure(
            processors=processors,
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )

    def close(self) -> None:
        """Detach and close the channel file handlers."""
        root_logger = logging.getLogger()
        for handler in self.channel_handlers.values():
            root_logger.removeHandler(handler)
            handler.close()
        self.channel_handlers.clear()

    def get_logger(self, name: str, component: Optional[str] = None) -> structlog.BoundLogger:
        """Get a structured logger for a component."""
        if name in self.configured_loggers:
            return self.configured_loggers[name]

        logger = structlog.get_logger(name)
        if component:
            logger = logger.bind(component=component)

        self.configured_loggers[name] = logger
        return logger

    def get_channel_logger(self, name: str, channel: LogChannel) -> structlog.BoundLogger:
        """Get a logger for a specific channel."""
        return self.get_logger(name).bind(channel=channel.value)


def configure_enhanced_logging(settings: Settings) -> None:
    """Configure enhanced logging system."""
    global _logger_manager

    # Prevent duplicate configuration
    if _logger_manager is not None:
        return

    _logger_manager = EnhancedLoggerManager(settings)


def reset_logging() -> None:
    """Drop the configured manager and its file handlers (tests reconfigure with new settings)."""
    global _logger_manager
    if _logger_manager is not None:
        _logger_manager.close()
    _logger_manager = None


def get_enhanced_logger(name: str, component: Optional[str] = None) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    if _logger_manager is None:
        # Lazy proxy: picks up processors once logging is configured.
        # File routing keys on the bound component/channel, so import-time
        # loggers still reach their channel files.
        if component:
            return structlog.get_logger(name, component=component)
        return structlog.get_logger(name)

    return _logger_manager.get_logger(name, component)


def get_channel_logger(name: str, channel: LogChannel) -> structlog.BoundLogger:
    """Get a logger for a specific channel."""
    if _logger_manager is None:
        return structlog.get_logger(name, channel=channel.value)

    return _logger_manager.get_channel_logger(name, channel)


def get_trading_logger(name: str) -> structlog.BoundLogger:
    """Get a trading logger."""
    return get_channel_logger(name, LogChannel.TRADING)


def get_api_logger(name: str) -> structlog.BoundLogger:
    """Get an API logger."""
    return get_channel_logger(name, LogChannel.API)


def get_audit_logger(name: str) -> structlog.BoundLogger:
    """Get an audit logger."""
    return get_channel_logger(name, LogChannel.AUDIT)


def get_error_logger(name: str) -> structlog.BoundLogger:
    """Get an error logger."""
    return get_channel_logger(name, LogChannel.ERROR)


def get_database_logger(name: str) -> structlog.BoundLogger:
    """Get a database logger."""
    return get_channel_logger(name, LogChannel.DATABASE)
