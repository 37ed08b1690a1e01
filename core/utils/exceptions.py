# Structured exception hierarchy for the DeltaDesk backend

from typing import Dict, Any, Optional
from datetime import datetime, timezone


class DeltaDeskException(Exception):
    """Base exception for all DeltaDesk specific errors"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None,
                 correlation_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.correlation_id = correlation_id
        self.timestamp = datetime.now(timezone.utc)


class TransientError(DeltaDeskException):
    """Base class for failures of remote collaborators that may succeed later"""
    pass


class PermanentError(DeltaDeskException):
    """Base class for failures that will not change on retry"""
    pass


# Vault Errors
class AppLockedError(PermanentError):
    """Signing material was requested while the vault is locked"""

    def __init__(self, message: str = "App is locked. Please unlock to access accounts.", **kwargs):
        super().__init__(message, **kwargs)


class VaultNotInitializedError(PermanentError):
    """No master password or key salt has been set up yet"""

    def __init__(self, message: str = "App security not initialized", **kwargs):
        super().__init__(message, **kwargs)


class InvalidPasswordError(PermanentError):
    """Master password failed verification or could not decrypt an account"""

    def __init__(self, message: str = "Invalid password", **kwargs):
        super().__init__(message, **kwargs)


class DecryptionError(PermanentError):
    """Ciphertext could not be authenticated with the derived key"""

    def __init__(self, message: str, account_id: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.account_id = account_id


class AccountNotFoundError(PermanentError):
    """Account id did not resolve during key resolution"""

    def __init__(self, account_id: str, **kwargs):
        super().__init__(f"Account not found: {account_id}", **kwargs)
        self.account_id = account_id


# Execution Errors
class ExecutionNotFoundError(PermanentError):
    """Execution id is not registered"""

    def __init__(self, execution_id: str, **kwargs):
        super().__init__(f"Execution not found: {execution_id}", **kwargs)
        self.execution_id = execution_id


class SessionCloseFailedError(TransientError):
    """The session's own close raised; the record was still removed"""

    def __init__(self, execution_id: str, cause: BaseException, **kwargs):
        super().__init__(
            f"Failed to close execution {execution_id}: {cause}", **kwargs
        )
        self.execution_id = execution_id
        self.cause = cause


# Configuration Errors
class ConfigurationError(PermanentError):
    """Configuration validation errors"""

    def __init__(self, message: str, config_field: str, config_value: Any,
                 **kwargs):
        super().__init__(message, **kwargs)
        self.config_field = config_field
        self.config_value = config_value


# Validation Errors
class ValidationError(PermanentError):
    """Data validation errors"""

    def __init__(self, message: str, field: str, value: Any,
                 expected_type: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value
        self.expected_type = expected_type


def create_error_context(error: Exception, operation: str,
                        additional_context: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Create structured error context for logging

    Args:
        error: The exception that occurred
        operation: The operation that failed
        additional_context: Additional context information

    Returns:
        Structured error context dictionary
    """
    context = {
        "error_type": type(error).__name__,
        "error_message": str(error),
        "operation": operation,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "transient": isinstance(error, TransientError),
    }

    if isinstance(error, DeltaDeskException):
        if error.correlation_id:
            context["correlation_id"] = error.correlation_id
        if error.details:
            context["error_details"] = error.details

        if isinstance(error, (AccountNotFoundError, DecryptionError)) and error.account_id:
            context["account_id"] = error.account_id

        if isinstance(error, (ExecutionNotFoundError, SessionCloseFailedError)):
            context["execution_id"] = error.execution_id

        if isinstance(error, SessionCloseFailedError):
            context["cause_type"] = type(error.cause).__name__

    if additional_context:
        context.update(additional_context)

    return context
