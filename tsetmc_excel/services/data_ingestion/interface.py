"""
Market Data Source Interface

Defines the contract between the fetchers and the remote API.
"""

from abc import ABC, abstractmethod


class MarketDataSource(ABC):
    """
    Market data collaborator contract.

    Every fetch method fails silently: transport errors, bad status codes
    and malformed payloads all come back as an empty dict. Callers treat
    an empty dict as "no data".
    """

    @property
    def name(self) -> str:
        return type(self).__name__

    @abstractmethod
    async def fetch_closing_price(self, ins_code: str, field_names: list[str]) -> dict[str, str]:
        """Closing price fields for one instrument, plus a Date stamp."""
        pass

    @abstractmethod
    async def fetch_fund_info(self, ins_code: str) -> dict[str, str]:
        """Fund (ETF) fields pRedTran and pSubTran for one instrument."""
        pass

    @abstractmethod
    async def fetch_market_overview(self, field_names: list[str]) -> dict[str, str]:
        """Market-wide overview fields, plus a Date stamp."""
        pass

    async def close(self) -> None:
        """Release network resources."""
        pass
