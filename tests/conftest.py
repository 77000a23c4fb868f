import asyncio

import pytest

from tsetmc_excel.core.config import Settings
from tsetmc_excel.services.data_ingestion.interface import MarketDataSource


class FakeSource(MarketDataSource):
    """In-memory MarketDataSource keyed by instrument code."""

    def __init__(self, closing=None, fund=None, overview=None, delay: float = 0.0):
        self.closing = closing or {}
        self.fund = fund or {}
        self.overview = overview or {}
        self.delay = delay
        self.calls: list[tuple] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def fetch_closing_price(self, ins_code, field_names):
        self.calls.append(("closing", ins_code, tuple(field_names)))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
        finally:
            self.in_flight -= 1
        value = self.closing.get(ins_code, {})
        if isinstance(value, Exception):
            raise value
        return dict(value)

    async def fetch_fund_info(self, ins_code):
        self.calls.append(("fund", ins_code))
        return dict(self.fund.get(ins_code, {}))

    async def fetch_market_overview(self, field_names):
        self.calls.append(("overview", tuple(field_names)))
        return dict(self.overview)


def build_settings(tmp_path, **overrides) -> Settings:
    values = {
        "api_parameter": "111,222,333",
        "instrument_names": "Alpha,Beta,Gamma",
        "excel_file_name": str(tmp_path / "book.xlsx"),
        "selected_items": ["priceMin", "priceMax"],
        "non_zero_items": ["priceMin"],
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def closing_for(*codes, **fields):
    payload = {"Date": "2024-01-01 10:00:00", "priceMin": "100", "priceMax": "120"}
    payload.update(fields)
    return {code: dict(payload) for code in codes}


@pytest.fixture
def settings(tmp_path):
    return build_settings(tmp_path)


@pytest.fixture
def source():
    return FakeSource(closing=closing_for("111", "222", "333"))
