import asyncio

import pytest
from aiohttp import test_utils, web
from conftest import build_settings

from tsetmc_excel.services.data_ingestion.tsetmc_adapter import (
    TseTmcClient,
    extract_fields,
    to_text,
)

CLOSING = {"closingPriceInfo": {"priceMin": 100.0, "priceMax": 120, "pClosing": None}}
ETF = {"etf": {"pRedTran": 9870, "pSubTran": 9910, "insCode": "111"}}
OVERVIEW = {"marketOverview": {"indexLastValue": 2100000.5, "indexChange": -1500}}


def test_to_text_matches_wire_form():
    assert to_text(None) == ""
    assert to_text(True) == "True"
    assert to_text(12) == "12"
    assert to_text(1.5) == "1.5"
    assert to_text("abc") == "abc"


def test_extract_fields_stamps_date_and_blanks_missing():
    data = extract_fields(CLOSING, "closingPriceInfo", ["priceMax", "qTotCap"])

    assert list(data) == ["Date", "priceMax", "qTotCap"]
    assert data["priceMax"] == "120"
    assert data["qTotCap"] == ""


def test_extract_fields_rejects_missing_root():
    with pytest.raises(KeyError):
        extract_fields({}, "closingPriceInfo", ["priceMin"])
    with pytest.raises(TypeError):
        extract_fields({"closingPriceInfo": None}, "closingPriceInfo", ["priceMin"])


def _app(status: int = 200) -> web.Application:
    async def closing(request):
        if status != 200:
            return web.Response(status=status)
        return web.json_response(CLOSING)

    async def etf(request):
        return web.json_response(ETF)

    async def overview(request):
        return web.json_response(OVERVIEW)

    app = web.Application()
    app.router.add_get("/api/ClosingPrice/GetClosingPriceInfo/{ins_code}", closing)
    app.router.add_get("/api/Fund/GetETFByInsCode/{ins_code}", etf)
    app.router.add_get("/api/MarketData/GetMarketOverview/1", overview)
    return app


async def _with_client(tmp_path, app, scenario):
    server = test_utils.TestServer(app)
    await server.start_server()
    client = TseTmcClient(build_settings(tmp_path, base_url=f"http://{server.host}:{server.port}/api"))
    try:
        return await scenario(client)
    finally:
        await client.close()
        await server.close()


def test_client_reads_all_three_endpoints(tmp_path):
    async def scenario(client):
        return (
            await client.fetch_closing_price("111", ["priceMin", "pClosing"]),
            await client.fetch_fund_info("111"),
            await client.fetch_market_overview(["indexChange"]),
        )

    closing, fund, overview = asyncio.run(_with_client(tmp_path, _app(), scenario))

    assert closing["priceMin"] == "100.0"
    assert closing["pClosing"] == ""
    assert fund == {"pRedTran": "9870", "pSubTran": "9910"}
    assert overview["indexChange"] == "-1500"
    assert "Date" in overview


def test_error_status_gives_empty_result(tmp_path):
    async def scenario(client):
        return await client.fetch_closing_price("111", ["priceMin"])

    assert asyncio.run(_with_client(tmp_path, _app(status=500), scenario)) == {}


def test_unreachable_host_gives_empty_result(tmp_path):
    client = TseTmcClient(build_settings(tmp_path, base_url="http://127.0.0.1:9/api", timeout=2))

    async def scenario():
        try:
            return await client.fetch_market_overview(["indexChange"])
        finally:
            await client.close()

    assert asyncio.run(scenario()) == {}
