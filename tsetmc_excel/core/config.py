"""
Application Configuration

Settings are read from a JSON settings file, environment variables
(prefix TSETMC_) and .env, then frozen. The resulting object is built once
at startup and handed to every component that needs it.
"""

import json
import logging
import re
from pathlib import Path
from typing import Optional, Union

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings

from tsetmc_excel.schemas.market import Category, Instrument
from tsetmc_excel.services.base import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "appsettings.json"

CLOSING_ITEMS = [
    "priceMin",
    "priceMax",
    "priceYesterday",
    "priceFirst",
    "pClosing",
    "pDrCotVal",
    "zTotTran",
    "qTotTran5J",
    "qTotCap",
]

ETF_ITEMS = ["pRedTran", "pSubTran"]

OVERVIEW_ITEMS = [
    "indexLastValue",
    "indexChange",
    "indexEqualWeightedLastValue",
    "indexEqualWeightedChange",
    "marketActivityZTotTran",
    "marketActivityQTotTran",
    "marketActivityQTotCap",
    "marketValue",
]


class Settings(BaseSettings):
    """Poller settings."""

    # Instruments
    api_parameter: str = ""  # Comma-separated instrument codes (insCode)
    instrument_names: str = ""  # Comma-separated display names, same order

    # Workbook
    excel_file_name: str = "TseTmc.xlsx"
    sheet_name: str = "Instruments"
    overview_sheet_name: str = "MarketOverview"
    id_column: str = "SharedID"
    stock_column: str = "Stock"

    # Polling
    update_interval: int = Field(default=10, ge=1)  # Seconds between ticks
    timeout: int = Field(default=5, ge=1)  # Per-request timeout in seconds
    concurrent_fetch: bool = True
    ask_settings: bool = False

    # Remote API
    base_url: str = "https://cdn.tsetmc.com/api"
    user_agent: str = "Mozilla/5.0 (Windows NT 10.0; Win64; x64)"

    # Fields
    closing_items: list[str] = list(CLOSING_ITEMS)
    etf_items: list[str] = list(ETF_ITEMS)
    overview_items: list[str] = list(OVERVIEW_ITEMS)
    selected_items: list[str] = list(CLOSING_ITEMS)
    non_zero_items: list[str] = []

    # Logging
    log_level: str = "INFO"
    log_dir: Optional[str] = None
    log_to_file: bool = False

    class Config:
        env_prefix = "TSETMC_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        frozen = True
        extra = "ignore"

    @field_validator("excel_file_name")
    @classmethod
    def _ensure_xlsx_suffix(cls, value: str) -> str:
        value = value.strip()
        if not value.endswith(".xlsx"):
            value += ".xlsx"
        return value

    @field_validator("api_parameter", "instrument_names")
    @classmethod
    def _strip_spaces(cls, value: str) -> str:
        return value.replace(" ", "")

    @property
    def instruments(self) -> list[Instrument]:
        """Configured instruments in the order they were given."""
        codes = _split_list(self.api_parameter)
        names = _split_list(self.instrument_names) or codes
        return [Instrument(ins_code=code, name=name) for code, name in zip(codes, names)]

    @property
    def all_items(self) -> list[str]:
        """Every field the remote API can supply, per-instrument fields first."""
        return [*self.etf_items, *self.closing_items, *self.overview_items]

    def items_for(self, category: Category) -> list[str]:
        if category == Category.CLOSING_PRICE:
            return self.closing_items
        if category == Category.FUND:
            return self.etf_items
        return self.overview_items

    def selected_for(self, category: Category) -> list[str]:
        """Selected fields belonging to one category, in selection order."""
        items = set(self.items_for(category))
        return [name for name in self.selected_items if name in items]

    @property
    def sheet_names(self) -> list[str]:
        return [self.sheet_name, self.overview_sheet_name]


def _split_list(value: str) -> list[str]:
    return [part for part in value.split(",") if part]


def _to_snake_case(key: str) -> str:
    """ApiParameter -> api_parameter; snake_case keys pass through."""
    return re.sub(r"(?<!^)(?=[A-Z][a-z])", "_", key).lower()


def read_config_file(path: Union[str, Path]) -> dict:
    """Read a JSON settings file. A missing file yields no values."""
    path = Path(path)
    if not path.exists():
        return {}

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise ConfigurationError("Settings", f"Cannot read {path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigurationError("Settings", f"{path} must contain a JSON object")

    return {_to_snake_case(key): value for key, value in raw.items()}


def check_settings(settings: Settings) -> Settings:
    """Reject settings the poller cannot run with."""
    codes = _split_list(settings.api_parameter)
    if not codes:
        raise ConfigurationError("Settings", "api_parameter must list at least one instrument code")

    names = _split_list(settings.instrument_names)
    if names and len(names) != len(codes):
        raise ConfigurationError(
            "Settings",
            f"{len(codes)} instrument codes but {len(names)} instrument names",
            details={"codes": codes, "names": names},
        )

    if len(set(settings.sheet_names)) != len(settings.sheet_names):
        raise ConfigurationError("Settings", "sheet_name and overview_sheet_name must differ")

    unknown = [name for name in settings.selected_items if name not in settings.all_items]
    if unknown:
        logger.warning(f"Ignoring selected fields no endpoint supplies: {unknown}")

    return settings


def load_settings(
    config_path: Union[str, Path, None] = DEFAULT_CONFIG_FILE,
    **overrides,
) -> Settings:
    """
    Build the frozen settings for one process.

    Values from the JSON file win over environment variables; keyword
    overrides win over both.

    Raises:
        ConfigurationError: If the file is unreadable or a required
            setting is missing or inconsistent.
    """
    values = read_config_file(config_path) if config_path else {}
    values.update(overrides)

    try:
        settings = Settings(**values)
    except ValidationError as e:
        raise ConfigurationError("Settings", str(e)) from e

    return check_settings(settings)


def replace_settings(settings: Settings, **changes) -> Settings:
    """Return a validated copy of frozen settings with some values changed."""
    values = settings.model_dump()
    values.update(changes)
    try:
        updated = Settings(_env_file=None, **values)
    except ValidationError as e:
        raise ConfigurationError("Settings", str(e)) from e
    return check_settings(updated)
