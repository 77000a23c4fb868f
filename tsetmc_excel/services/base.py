"""
Service errors

Shared exception hierarchy. Errors that belong to a single tick are caught
inside the tick; only ConfigurationError is allowed to end the process.
"""


class ServiceError(Exception):
    """Base exception for service errors."""

    def __init__(self, service_name: str, message: str, details: dict = None):
        self.service_name = service_name
        self.message = message
        self.details = details or {}
        super().__init__(f"[{service_name}] {message}")


class ConfigurationError(ServiceError):
    """Settings are missing or inconsistent."""
    pass


class StoreError(ServiceError):
    """Workbook could not be opened or saved."""
    pass


class ExternalAPIError(ServiceError):
    """External API call failed."""
    pass
