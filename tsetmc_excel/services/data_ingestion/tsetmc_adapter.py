"""
TSETMC Data Adapter

Fetches closing price, ETF and market overview data from the public
TSETMC CDN API. Every value is handed back as text; typing happens when
the value is written to the workbook.
"""

import asyncio
import json
import logging
from datetime import datetime
from typing import Any, Optional

import aiohttp

from tsetmc_excel.core.config import Settings
from tsetmc_excel.core.logger import log_exception_chain
from tsetmc_excel.services.base import ExternalAPIError
from tsetmc_excel.services.data_ingestion.interface import MarketDataSource

logger = logging.getLogger(__name__)

CLOSING_PRICE_PATH = "/ClosingPrice/GetClosingPriceInfo/{ins_code}"
ETF_PATH = "/Fund/GetETFByInsCode/{ins_code}"
MARKET_OVERVIEW_PATH = "/MarketData/GetMarketOverview/1"

FUND_KEYS = ("pRedTran", "pSubTran")
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Anything that means "this call produced no usable data"
FETCH_ERRORS = (
    aiohttp.ClientError,
    asyncio.TimeoutError,
    ExternalAPIError,
    ValueError,
    KeyError,
    TypeError,
)


def to_text(value: Any) -> str:
    """Render a JSON value the way it appeared on the wire."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "True" if value else "False"
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def extract_fields(
    payload: dict,
    root_key: str,
    field_names: list[str],
    stamp: bool = True,
) -> dict[str, str]:
    """
    Pull the requested fields out of one response object.

    A requested field absent from the response comes back as "" so that
    validation rejects it instead of silently writing a short row.

    Raises:
        KeyError/TypeError: If the root object is missing or not an object.
    """
    root = payload[root_key]
    if not isinstance(root, dict):
        raise TypeError(f"'{root_key}' is {type(root).__name__}, expected an object")

    data: dict[str, str] = {}
    if stamp:
        data["Date"] = datetime.now().strftime(DATE_FORMAT)

    for name in field_names:
        data[name] = to_text(root.get(name))

    return data


class TseTmcClient(MarketDataSource):
    """
    TSETMC CDN client.

    One aiohttp session is shared by all calls of the process; every
    request is bounded by the configured timeout.
    """

    def __init__(self, settings: Settings):
        self._base_url = settings.base_url.rstrip("/")
        self._timeout = settings.timeout
        self._user_agent = settings.user_agent
        self._session: Optional[aiohttp.ClientSession] = None

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure we have an active HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._timeout),
                headers={
                    "Accept": "application/json, text/plain, */*",
                    "User-Agent": self._user_agent,
                },
            )
        return self._session

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def _get_json(self, path: str) -> dict:
        session = await self._ensure_session()
        url = f"{self._base_url}{path}"

        async with session.get(url) as response:
            if response.status != 200:
                raise ExternalAPIError(
                    self.name,
                    f"GET {url} returned status {response.status}",
                    details={"status": response.status},
                )
            payload = await response.json(content_type=None)

        if not isinstance(payload, dict):
            raise ValueError(f"GET {url} returned {type(payload).__name__}, expected an object")
        return payload

    async def fetch_closing_price(self, ins_code: str, field_names: list[str]) -> dict[str, str]:
        try:
            payload = await self._get_json(CLOSING_PRICE_PATH.format(ins_code=ins_code))
            return extract_fields(payload, "closingPriceInfo", field_names)
        except FETCH_ERRORS as e:
            log_exception_chain(logger, f"Error fetching ClosingPriceInfo for {ins_code}", e)
            return {}

    async def fetch_fund_info(self, ins_code: str) -> dict[str, str]:
        try:
            payload = await self._get_json(ETF_PATH.format(ins_code=ins_code))
            root = payload["etf"]
            if not isinstance(root, dict):
                raise TypeError(f"no ETF data for {ins_code}")
            return {key: to_text(root[key]) for key in FUND_KEYS if key in root}
        except FETCH_ERRORS as e:
            log_exception_chain(logger, f"Error fetching ETFByInsCode for {ins_code}", e)
            return {}

    async def fetch_market_overview(self, field_names: list[str]) -> dict[str, str]:
        try:
            payload = await self._get_json(MARKET_OVERVIEW_PATH)
            return extract_fields(payload, "marketOverview", field_names)
        except FETCH_ERRORS as e:
            log_exception_chain(logger, "Error fetching MarketOverview", e)
            return {}
