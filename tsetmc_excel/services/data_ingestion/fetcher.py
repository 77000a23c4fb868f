"""
Instrument Fetcher

Builds one validated record per instrument from the closing price and
fund endpoints. A record is returned only if every endpoint that was
called produced a fully valid contribution.
"""

import logging
from typing import Awaitable, Optional

from tsetmc_excel.core.config import Settings
from tsetmc_excel.schemas.market import Category, Instrument, Record
from tsetmc_excel.services.data_ingestion.interface import MarketDataSource
from tsetmc_excel.services.data_ingestion.validation import (
    first_rejected_field,
    merge_fields,
)

logger = logging.getLogger(__name__)


class InstrumentFetcher:
    """Fetch, validate and merge the per-instrument fields for one tick."""

    def __init__(self, settings: Settings, source: MarketDataSource):
        self._source = source
        self._id_column = settings.id_column
        self._stock_column = settings.stock_column
        self._non_zero_items = frozenset(settings.non_zero_items)
        self._closing_fields = settings.selected_for(Category.CLOSING_PRICE)
        self._fund_fields = settings.selected_for(Category.FUND)

    @property
    def has_work(self) -> bool:
        """Whether any per-instrument field is selected at all."""
        return bool(self._closing_fields or self._fund_fields)

    async def fetch(self, instrument: Instrument, batch_id: int) -> Optional[Record]:
        """Return the instrument's record for this batch, or None if rejected."""
        record: Record = {
            self._id_column: str(batch_id),
            self._stock_column: instrument.name,
        }

        if self._closing_fields:
            incoming = await self._call(
                instrument,
                "closing price",
                self._source.fetch_closing_price(instrument.ins_code, self._closing_fields),
            )
            if not self._merge(instrument, "closing price", record, incoming):
                return None

        if self._fund_fields:
            incoming = await self._call(
                instrument,
                "fund",
                self._source.fetch_fund_info(instrument.ins_code),
            )
            if not self._merge(instrument, "fund", record, incoming):
                return None

        return record

    async def _call(self, instrument: Instrument, label: str, call: Awaitable[dict]) -> dict:
        try:
            return await call
        except Exception as e:
            logger.error(f"{label} fetch for {instrument.name} raised {type(e).__name__}: {e}")
            return {}

    def _merge(self, instrument: Instrument, label: str, record: Record, incoming: dict) -> bool:
        valid, _ = merge_fields(record, incoming, self._non_zero_items)
        if valid:
            return True

        if not incoming:
            logger.warning(f"No {label} data for {instrument.name} ({instrument.ins_code})")
        else:
            field = first_rejected_field(incoming, self._non_zero_items)
            logger.warning(
                f"Rejected {label} data for {instrument.name}: "
                f"field '{field}' = {incoming.get(field)!r}"
            )
        return False
