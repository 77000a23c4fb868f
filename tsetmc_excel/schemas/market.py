"""
Market data contracts

Instrument and category definitions consumed by the fetchers, and the
per-tick result produced by the batch orchestrator.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

# Field name -> raw string value, as received from the remote API
Record = dict[str, str]


# =============================================================================
# ENUMS
# =============================================================================


class Category(str, Enum):
    """Which endpoint supplies a field and which sheet it lands in."""

    CLOSING_PRICE = "closing_price"
    FUND = "fund"
    MARKET_OVERVIEW = "market_overview"


class TickOutcome(str, Enum):
    COMMITTED = "committed"
    PARTIAL_DROP = "partial_drop"
    STORE_OPEN_FAILED = "store_open_failed"
    STORE_WRITE_FAILED = "store_write_failed"
    NOTHING_TO_WRITE = "nothing_to_write"


# =============================================================================
# INPUT: Instrument
# =============================================================================


class Instrument(BaseModel):
    """An instrument to poll. `ins_code` goes into the URL, `name` into the sheet."""

    ins_code: str = Field(..., min_length=1, description="TSETMC instrument code")
    name: str = Field(..., min_length=1, description="Human-readable name")

    model_config = {"frozen": True}


# =============================================================================
# OUTPUT: BatchResult
# =============================================================================


class BatchResult(BaseModel):
    """What happened during one polling tick."""

    tick: int = Field(default=0, description="Scheduler tick counter")
    batch_id: int = Field(default=0, description="SharedID assigned to this tick")
    outcome: TickOutcome
    instruments_expected: int = 0
    instruments_received: int = 0
    rows_written: dict[str, int] = Field(
        default_factory=dict,
        description="Sheet name -> rows appended and saved",
    )
    overview_written: bool = False
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=datetime.now)
    latency_ms: int = 0

    @property
    def committed(self) -> bool:
        return self.outcome == TickOutcome.COMMITTED
