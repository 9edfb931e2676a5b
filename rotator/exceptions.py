"""
Exceptions raised by backup-rotator.

Fatal conditions (ConfigError, LockContention, CatalogUnavailable,
TargetBackupFailure) end a run with exit code 1. PruneDeletionFailure and
HookFailure are reported but never abort a run.
"""


class RotatorError(Exception):
    """Base exception for all backup-rotator errors."""

    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigError(RotatorError):
    """Raised when configuration is missing or invalid."""
    pass


class LockContention(RotatorError):
    """Raised when another run already holds the lock."""
    pass


class StorageError(RotatorError):
    """Raised when a storage engine command fails."""

    def __init__(self, message: str, output: str = '', details: dict = None):
        self.output = output
        super().__init__(message, details)


class CatalogUnavailable(RotatorError):
    """Raised when the archive listing cannot be obtained."""
    pass


class TargetBackupFailure(RotatorError):
    """Raised when one or more targets failed to back up."""
    pass


class PruneDeletionFailure(RotatorError):
    """Raised (and collected) when a single archive deletion fails."""
    pass


class HookFailure(RotatorError):
    """Raised when a pre/post backup hook exits non-zero."""
    pass
