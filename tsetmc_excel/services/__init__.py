"""
Poller Services

Fetching, validation, batching, storage and scheduling.
"""

from tsetmc_excel.services.base import (
    ConfigurationError,
    ExternalAPIError,
    ServiceError,
    StoreError,
)

__all__ = ["ServiceError", "ConfigurationError", "StoreError", "ExternalAPIError"]
