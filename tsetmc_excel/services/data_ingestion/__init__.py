"""
Data Ingestion

CONTRACT:
    Input:  Instrument, SharedID
    Output: validated Record (or None)

RESPONSIBILITIES:
    - Fetch closing price, ETF and market overview data from TSETMC
    - Validate every field (non-blank, non-zero where configured)
    - Merge endpoint results into one record, all-or-nothing
"""

from tsetmc_excel.services.data_ingestion.interface import MarketDataSource
from tsetmc_excel.services.data_ingestion.validation import (
    merge_fields,
    validate_field,
)
from tsetmc_excel.services.data_ingestion.fetcher import InstrumentFetcher
from tsetmc_excel.services.data_ingestion.tsetmc_adapter import TseTmcClient

__all__ = [
    "MarketDataSource",
    "validate_field",
    "merge_fields",
    "InstrumentFetcher",
    "TseTmcClient",
]
