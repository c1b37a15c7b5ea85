"""Custom exception types for the technical debt analyzer."""


class TechDebtError(Exception):
    """Base exception for all recoverable analyzer errors."""


class ConfigurationError(TechDebtError):
    """Raised when runtime configuration values are missing or invalid."""


class AuthenticationError(TechDebtError):
    """Raised when the support API rejects the configured credentials."""


class ApiError(TechDebtError):
    """Raised when a support API request fails or returns an unexpected response."""


class DataValidationError(TechDebtError):
    """Raised when raw ticket or usage payloads do not meet expected constraints."""
