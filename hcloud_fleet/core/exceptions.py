"""
Core exception classes for Hetzner Cloud Fleet.
"""
from typing import Optional


class HCloudFleetError(Exception):
    """Base exception for all hcloud-fleet errors."""

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ConfigurationError(HCloudFleetError):
    """Raised when configuration is invalid or missing."""
    pass


class FetchError(HCloudFleetError):
    """Raised when a listing or the price catalog cannot be retrieved."""

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        status_code: Optional[int] = None,
        path: Optional[str] = None,
    ):
        super().__init__(message, details)
        self.status_code = status_code
        self.path = path


class CatalogError(FetchError):
    """Raised when the price catalog document cannot be decoded at all."""
    pass


class ValidationError(HCloudFleetError):
    """Raised when input validation fails."""
    pass


class UserCancelled(HCloudFleetError):
    """Raised when user cancels operation (Ctrl+C)."""

    def __init__(self, message: str = "Operation cancelled by user"):
        super().__init__(message)
