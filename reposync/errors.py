"""Error types and error reporting for reposync."""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, Any, Optional


class ErrorCategory(Enum):
    """Categories of synchronization failures."""
    PRECONDITION = "precondition"
    TRANSPORT = "transport"
    DIVERGENCE = "divergence"
    CONFIGURATION = "configuration"


class SyncError(Exception):
    """
    Base class for every failure that terminates a synchronization run.

    ``output`` carries the raw diagnostic text of the git invocation that
    failed (empty for checks performed before any git command runs).
    """

    error_code = "SYNC_FAILED"
    category = ErrorCategory.PRECONDITION

    def __init__(self, message: str, output: str = ""):
        super().__init__(message)
        self.message = message
        self.output = output or ""

    def __str__(self) -> str:
        if self.output:
            return f"{self.message}\n{self.output}"
        return self.message


class PreconditionError(SyncError):
    """Git is missing, the credential is unusable, or the target is locked."""

    error_code = "PRECONDITION_FAILED"
    category = ErrorCategory.PRECONDITION


class TransportError(SyncError):
    """Clone or fetch could not reach or authenticate to the remote."""

    error_code = "TRANSPORT_FAILED"
    category = ErrorCategory.TRANSPORT


class DivergenceError(SyncError):
    """Local and remote histories cannot be reconciled without force."""

    error_code = "DIVERGED"
    category = ErrorCategory.DIVERGENCE


@dataclass
class ErrorResponse:
    """Standardized error record for a failed synchronization."""
    error: str
    error_code: str
    message: str
    timestamp: str
    category: str
    output: str = ""
    context: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert error response to dictionary format."""
        result = {
            "error": self.error,
            "error_code": self.error_code,
            "message": self.message,
            "timestamp": self.timestamp,
            "category": self.category,
            "output": self.output
        }
        if self.context:
            result["context"] = self.context
        return result


class ErrorHandler:
    """Turns synchronization errors into logged, structured responses."""

    def __init__(self):
        self.logger = logging.getLogger('reposync.error_handler')

    def handle_sync_error(self, error: SyncError, context: Dict[str, Any] = None) -> ErrorResponse:
        """Record a SyncError raised by the synchronizer."""
        context = context or {}

        error_response = ErrorResponse(
            error="Repository synchronization failed",
            error_code=error.error_code,
            message=error.message,
            timestamp=datetime.now().isoformat(),
            category=error.category.value,
            output=error.output,
            context=context
        )

        self.logger.error(
            f"Synchronization error: {error.message}",
            extra={
                'operation': 'sync_error',
                'error_code': error.error_code,
                'target_path': context.get('target_path'),
                'branch': context.get('branch')
            }
        )

        return error_response

    def handle_configuration_error(self, error: Exception, context: Dict[str, Any] = None) -> ErrorResponse:
        """Record an invalid configuration value."""
        context = context or {}

        error_response = ErrorResponse(
            error="Configuration error",
            error_code="CONFIGURATION_INVALID",
            message=str(error),
            timestamp=datetime.now().isoformat(),
            category=ErrorCategory.CONFIGURATION.value,
            context=context
        )

        self.logger.error(
            f"Configuration error: {error}",
            extra={'operation': 'configuration_error', 'error_code': "CONFIGURATION_INVALID"}
        )

        return error_response


# Initialize global error handler
error_handler = ErrorHandler()
