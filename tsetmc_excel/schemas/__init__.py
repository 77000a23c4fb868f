"""
Schema contracts shared by the fetchers, the orchestrator and the scheduler.
"""

from tsetmc_excel.schemas.market import (
    BatchResult,
    Category,
    Instrument,
    Record,
    TickOutcome,
)

__all__ = [
    "BatchResult",
    "Category",
    "Instrument",
    "Record",
    "TickOutcome",
]
