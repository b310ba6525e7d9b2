"""
Typed errors for capability operations.

Single-target operations raise one of the AgentxError subclasses below.
Presentation layers (CLI, HTTP API) turn them into a TypedError payload with
a user-facing title and message via to_typed_error().
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class ErrorCode(str, Enum):
    """Error codes for programmatic handling."""

    AGENT_NOT_FOUND = "agent_not_found"
    CAPABILITY_NOT_FOUND = "capability_not_found"
    NOT_APPLICABLE = "not_applicable"
    CONFIG_UNREADABLE = "config_unreadable"
    WRITE_FAILED = "write_failed"
    SOURCE_UNAVAILABLE = "source_unavailable"
    BULK_INSTALL_FAILED = "bulk_install_failed"

    # Generic
    UNKNOWN_ERROR = "unknown_error"


class AgentxError(Exception):
    """Base class for all capability operation failures."""

    code: ErrorCode = ErrorCode.UNKNOWN_ERROR

    def __init__(
        self,
        message: str,
        *,
        agent: Optional[str] = None,
        capability: Optional[str] = None,
        details: Optional[list[str]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.agent = agent
        self.capability = capability
        self.details = details or []


class AgentNotFound(AgentxError):
    """Referenced agent name is unknown to the registry."""

    code = ErrorCode.AGENT_NOT_FOUND


class CapabilityNotFound(AgentxError):
    """Capability is not in the catalog and no source was given."""

    code = ErrorCode.CAPABILITY_NOT_FOUND


class NotApplicable(AgentxError):
    """Agent is absent, or does not support the capability type."""

    code = ErrorCode.NOT_APPLICABLE


class ConfigUnreadable(AgentxError):
    """Agent store exists but cannot be parsed."""

    code = ErrorCode.CONFIG_UNREADABLE


class WriteFailed(AgentxError):
    """Atomic write failed; the previous store content is intact."""

    code = ErrorCode.WRITE_FAILED


class SourceUnavailable(AgentxError):
    """Skill or plugin content could not be materialized."""

    code = ErrorCode.SOURCE_UNAVAILABLE


class BulkInstallFailed(AgentxError):
    """Every applicable agent failed during an install-for-all."""

    code = ErrorCode.BULK_INSTALL_FAILED


class TypedError(BaseModel):
    """A structured error with user-friendly info."""

    code: ErrorCode = Field(description="Error code for programmatic handling")
    title: str = Field(description="User-friendly title")
    message: str = Field(description="Detailed message explaining what went wrong")
    agent: Optional[str] = Field(default=None, description="Agent the error relates to")
    capability: Optional[str] = Field(
        default=None, description="Capability the error relates to"
    )
    can_retry: bool = Field(
        alias="canRetry", default=False, description="Whether retrying may succeed"
    )
    details: Optional[list[str]] = Field(
        default=None, description="Diagnostic details (per-agent failures, parse errors)"
    )

    model_config = {"populate_by_name": True}


ERROR_DEFINITIONS: dict[ErrorCode, dict[str, Any]] = {
    ErrorCode.AGENT_NOT_FOUND: {
        "title": "Unknown Agent",
        "http_status": 404,
        "can_retry": False,
    },
    ErrorCode.CAPABILITY_NOT_FOUND: {
        "title": "Unknown Capability",
        "http_status": 404,
        "can_retry": False,
    },
    ErrorCode.NOT_APPLICABLE: {
        "title": "Not Applicable",
        "http_status": 409,
        "can_retry": False,
    },
    ErrorCode.CONFIG_UNREADABLE: {
        "title": "Configuration Unreadable",
        "http_status": 422,
        "can_retry": False,
    },
    ErrorCode.WRITE_FAILED: {
        "title": "Write Failed",
        "http_status": 500,
        "can_retry": True,
    },
    ErrorCode.SOURCE_UNAVAILABLE: {
        "title": "Source Unavailable",
        "http_status": 422,
        "can_retry": True,
    },
    ErrorCode.BULK_INSTALL_FAILED: {
        "title": "Install Failed For All Agents",
        "http_status": 500,
        "can_retry": True,
    },
    ErrorCode.UNKNOWN_ERROR: {
        "title": "Error",
        "http_status": 500,
        "can_retry": True,
    },
}


def to_typed_error(error: Exception) -> TypedError:
    """Convert an exception into a TypedError payload."""
    if isinstance(error, AgentxError):
        code = error.code
        definition = ERROR_DEFINITIONS[code]
        return TypedError(
            code=code,
            title=definition["title"],
            message=error.message,
            agent=error.agent,
            capability=error.capability,
            can_retry=definition["can_retry"],
            details=error.details or None,
        )

    definition = ERROR_DEFINITIONS[ErrorCode.UNKNOWN_ERROR]
    return TypedError(
        code=ErrorCode.UNKNOWN_ERROR,
        title=definition["title"],
        message=f"{type(error).__name__}: {error}",
        can_retry=definition["can_retry"],
    )


def http_status_for(error: TypedError) -> int:
    """HTTP status code used by the API for a typed error."""
    return ERROR_DEFINITIONS[error.code]["http_status"]
