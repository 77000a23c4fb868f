"""
Batch Orchestrator

Runs one polling tick: assigns the next SharedID, fetches every configured
instrument, and commits the batch only when every instrument produced a
valid record. The market overview row is written in the same save.
"""

import asyncio
import logging
from datetime import datetime
from typing import Optional

from openpyxl import Workbook

from tsetmc_excel.core.config import Settings
from tsetmc_excel.core.logger import log_exception_chain
from tsetmc_excel.schemas.market import (
    BatchResult,
    Category,
    Record,
    TickOutcome,
)
from tsetmc_excel.services.base import StoreError
from tsetmc_excel.services.data_ingestion.fetcher import InstrumentFetcher
from tsetmc_excel.services.data_ingestion.interface import MarketDataSource
from tsetmc_excel.services.data_ingestion.validation import merge_fields
from tsetmc_excel.services.storage.workbook import (
    WorkbookStore,
    append_record,
    find_column,
    get_or_create_table,
    get_table,
    last_assigned_id,
    row_count,
)

logger = logging.getLogger(__name__)

NO_VALID_DATA = "No valid data received to save!"


class BatchOrchestrator:
    """
    Runs polling ticks against one workbook.

    Usage:
        orchestrator = BatchOrchestrator(settings, source, WorkbookStore(path))
        result = await orchestrator.run_tick()

    A tick holds the orchestrator lock from opening the workbook until it
    has been saved, so two ticks never work on the same file at once.
    """

    def __init__(
        self,
        settings: Settings,
        source: MarketDataSource,
        store: WorkbookStore,
        fetcher: Optional[InstrumentFetcher] = None,
    ):
        self._settings = settings
        self._source = source
        self._store = store
        self._fetcher = fetcher or InstrumentFetcher(settings, source)
        self._instruments = settings.instruments
        self._overview_fields = settings.selected_for(Category.MARKET_OVERVIEW)
        self._non_zero_items = frozenset(settings.non_zero_items)
        self._lock = asyncio.Lock()

    @property
    def is_busy(self) -> bool:
        return self._lock.locked()

    async def run_tick(self, tick: int = 0) -> BatchResult:
        """Fetch, validate and persist one batch. Never raises for fetch or store failures."""
        async with self._lock:
            started = datetime.now()
            result = await self._run_locked(tick)
            result.started_at = started
            result.latency_ms = int((datetime.now() - started).total_seconds() * 1000)
            return result

    async def _run_locked(self, tick: int) -> BatchResult:
        expected = len(self._instruments) if self._fetcher.has_work else 0

        try:
            workbook = self._store.open()
        except StoreError as e:
            log_exception_chain(logger, "Error opening workbook", e)
            return BatchResult(
                tick=tick,
                outcome=TickOutcome.STORE_OPEN_FAILED,
                instruments_expected=expected,
                errors=[str(e)],
            )

        batch_id = self.next_batch_id(workbook)
        result = BatchResult(
            tick=tick,
            batch_id=batch_id,
            outcome=TickOutcome.NOTHING_TO_WRITE,
            instruments_expected=expected,
        )

        # Sheet name -> records to append, in write order
        pending: dict[str, list[Record]] = {}

        if self._fetcher.has_work:
            records = await self._collect(batch_id)
            result.instruments_received = len(records)

            if len(records) != len(self._instruments):
                failed = [
                    self._instruments[i].name
                    for i in range(len(self._instruments))
                    if i not in records
                ]
                logger.warning(NO_VALID_DATA)
                result.outcome = TickOutcome.PARTIAL_DROP
                result.warnings.append(f"No valid data for: {', '.join(failed)}")
                return result

            pending[self._settings.sheet_name] = [records[i] for i in sorted(records)]

        if self._overview_fields:
            overview = await self._fetch_overview(batch_id)
            if overview is not None:
                pending[self._settings.overview_sheet_name] = [overview]
            else:
                result.warnings.append("Market overview rejected")

        if not pending:
            return result

        return self._commit(workbook, pending, result)

    def next_batch_id(self, workbook: Workbook) -> int:
        """One past the highest SharedID in any category sheet."""
        latest = 0
        for name in self._settings.sheet_names:
            sheet = get_table(workbook, name)
            if sheet is None:
                continue
            column = find_column(sheet, self._settings.id_column) or 1
            latest = max(latest, last_assigned_id(sheet, column))
        return latest + 1

    async def _collect(self, batch_id: int) -> dict[int, Record]:
        """Run the fetcher for every instrument; index -> record for the successes."""
        if self._settings.concurrent_fetch:
            outcomes = await asyncio.gather(
                *(self._fetcher.fetch(instrument, batch_id) for instrument in self._instruments),
                return_exceptions=True,
            )
        else:
            outcomes = []
            for instrument in self._instruments:
                try:
                    outcomes.append(await self._fetcher.fetch(instrument, batch_id))
                except Exception as e:
                    outcomes.append(e)

        records: dict[int, Record] = {}
        for index, (instrument, outcome) in enumerate(zip(self._instruments, outcomes)):
            if isinstance(outcome, BaseException):
                logger.error(f"Fetch for {instrument.name} failed: {type(outcome).__name__}: {outcome}")
            elif outcome is not None:
                records[index] = outcome
        return records

    async def _fetch_overview(self, batch_id: int) -> Optional[Record]:
        try:
            incoming = await self._source.fetch_market_overview(self._overview_fields)
        except Exception as e:
            logger.error(f"Market overview fetch raised {type(e).__name__}: {e}")
            incoming = {}

        record: Record = {self._settings.id_column: str(batch_id)}
        valid, record = merge_fields(record, incoming, self._non_zero_items)
        if not valid:
            logger.warning("Market overview data incomplete, not saved")
            return None
        return record

    def _commit(
        self,
        workbook: Workbook,
        pending: dict[str, list[Record]],
        result: BatchResult,
    ) -> BatchResult:
        """Append every pending record, check row counts, then save once."""
        for sheet_name, records in pending.items():
            sheet = get_or_create_table(workbook, sheet_name)
            before = row_count(sheet)
            for record in records:
                append_record(sheet, record)
            after = row_count(sheet)

            if after - before != len(records):
                message = (
                    f"Sheet {sheet_name}: expected {len(records)} new rows, "
                    f"found {after - before}; workbook not saved"
                )
                logger.error(message)
                result.outcome = TickOutcome.STORE_WRITE_FAILED
                result.errors.append(message)
                return result

        try:
            self._store.save(workbook)
        except StoreError as e:
            log_exception_chain(logger, "Error saving workbook", e)
            result.outcome = TickOutcome.STORE_WRITE_FAILED
            result.errors.append(str(e))
            return result

        result.outcome = TickOutcome.COMMITTED
        result.rows_written = {name: len(records) for name, records in pending.items()}
        result.overview_written = self._settings.overview_sheet_name in pending

        stamp = datetime.now().strftime("%H:%M:%S")
        for name, count in result.rows_written.items():
            logger.info(f"{stamp}\t{name} ({count} rows, SharedID {result.batch_id})")
        return result
