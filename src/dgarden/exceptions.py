"""Custom exceptions for dgarden.

Provides a structured exception hierarchy with error codes and
machine-readable error information for better error handling.
"""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Error codes for machine-readable error identification."""

    # Note errors (1xxx)
    NOTE_NOT_FOUND = 1001
    NOTE_UNREADABLE = 1002

    # Front-matter errors (2xxx)
    FRONT_MATTER_SYNTAX = 2001
    FRONT_MATTER_NOT_MAPPING = 2002
    FRONT_MATTER_FIELD_TYPE = 2003

    # Vault/storage errors (4xxx)
    VAULT_NOT_FOUND = 4001
    STORAGE_READ_FAILED = 4002
    STORAGE_WRITE_FAILED = 4003

    # Configuration errors (6xxx)
    CONFIG_INVALID = 6001


class GardenError(Exception):
    """Base exception for all dgarden errors.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional context about the error
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.CONFIG_INVALID,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a dictionary for serialization."""
        return {
            "error": self.__class__.__name__,
            "code": self.code.value,
            "code_name": self.code.name,
            "message": self.message,
            "details": self.details
        }

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"[{self.code.name}] {self.message} ({detail_str})"
        return f"[{self.code.name}] {self.message}"


class FrontMatterError(GardenError):
    """Raised when a note's front-matter block cannot be used."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        line: Optional[int] = None,
        code: ErrorCode = ErrorCode.FRONT_MATTER_SYNTAX
    ):
        details = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)[:100]  # Truncate for safety
        if line is not None:
            details["line"] = line

        super().__init__(message, code=code, details=details)
        self.field = field
        self.value = value
        self.line = line


class NoteNotFoundError(GardenError):
    """Raised when a note path is not present in the vault."""

    def __init__(self, path: str, message: Optional[str] = None):
        super().__init__(
            message or f"Note '{path}' not found in vault",
            code=ErrorCode.NOTE_NOT_FOUND,
            details={"path": path}
        )
        self.path = path


class VaultError(GardenError):
    """Raised for filesystem errors while reading or writing the vault."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        path: Optional[str] = None,
        code: ErrorCode = ErrorCode.STORAGE_READ_FAILED,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if operation:
            details["operation"] = operation
        if path:
            details["path"] = path
        if original_error:
            details["original_error"] = str(original_error)[:200]

        super().__init__(message, code=code, details=details)
        self.operation = operation
        self.path = path
        self.original_error = original_error


class ConfigurationError(GardenError):
    """Raised for configuration-related errors."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        code: ErrorCode = ErrorCode.CONFIG_INVALID
    ):
        details = {}
        if config_key:
            details["config_key"] = config_key

        super().__init__(message, code=code, details=details)
        self.config_key = config_key
