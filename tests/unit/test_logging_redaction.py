import logging
from pathlib import Path

import pytest

from core.config.settings import Settings, LoggingSettings
from core.logging import configure_logging, get_audit_logger, reset_logging
from core.logging.channels import LogChannel, get_channel_for_component
from core.logging.enhanced_logging import REDACTED, build_redaction_processor
from services.executions.models import ChainConfig
from services.executions.registry import ExecutionRegistry
from services.vault.credential_vault import CredentialVault
from services.vault.secret_bytes import SecretBytes


@pytest.fixture
def file_logs(tmp_path):
    """Configure channel file logging into a temporary directory."""
    logs_dir = tmp_path / "logs"
    settings = Settings(
        environment="testing",
        logging=LoggingSettings(
            file_enabled=True,
            console_enabled=False,
            logs_dir=str(logs_dir),
        ),
    )
    reset_logging()
    configure_logging(settings)
    yield Path(logs_dir)
    reset_logging()


def test_redaction_masks_secret_keys_at_any_depth():
    redact = build_redaction_processor(["password", "signing_key"])

    event = redact(None, "info", {
        "event": "unlock",
        "password": "hunter2",
        "account": {"signing_key": "0xabc", "address": "0x1"},
        "batch": [{"Password": "again"}],
    })

    assert event["password"] == REDACTED
    assert event["account"] == {"signing_key": REDACTED, "address": "0x1"}
    assert event["batch"] == [{"Password": REDACTED}]
    assert event["event"] == "unlock"


def test_secret_bytes_render_redacted_in_log_values():
    assert "abc" not in str(SecretBytes("0xabc"))


def test_component_channel_mapping():
    assert get_channel_for_component("vault") == LogChannel.AUDIT
    assert get_channel_for_component("executions") == LogChannel.TRADING
    assert get_channel_for_component("unknown") == LogChannel.APPLICATION


def test_audit_channel_writes_file(file_logs):
    get_audit_logger("redaction_smoke").info("audit smoke message", password="hunter2")

    audit_log = file_logs / "audit.log"
    assert audit_log.exists()
    content = audit_log.read_text()
    assert "audit smoke message" in content
    assert "hunter2" not in content


def test_import_time_vault_logger_reaches_audit_file(file_logs, make_entry):
    vault = CredentialVault()
    vault.load_accounts([make_entry("acc1", signing_key="0x" + "11" * 32)])
    vault.clear()

    content = (file_logs / "audit.log").read_text()
    assert "Loaded accounts into memory" in content
    assert "Cleared all keys from memory" in content
    assert "11" * 32 not in content
    assert "Cleared all keys from memory" not in (file_logs / "trading.log").read_text()


@pytest.mark.asyncio
async def test_registry_logs_reach_trading_file(file_logs, make_entry, session_factory):
    vault = CredentialVault()
    vault.load_accounts([make_entry("acc1")])
    registry = ExecutionRegistry(vault, session_factory)

    execution_id = await registry.initialize_execution("delta", "strat1", [ChainConfig("ethereum", "acc1")])

    content = (file_logs / "trading.log").read_text()
    assert "Execution initialized" in content
    assert execution_id in content
    assert "Execution initialized" not in (file_logs / "audit.log").read_text()


def test_plain_stdlib_records_go_to_application_file(file_logs):
    logging.getLogger("third_party.lib").warning("plain stdlib warning")

    assert "plain stdlib warning" in (file_logs / "application.log").read_text()
    assert "plain stdlib warning" not in (file_logs / "audit.log").read_text()
