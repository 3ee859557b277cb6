import asyncio
import math

import httpx
import pytest

from offplan_roi.core.indices import (
    FALLBACK_TABLE,
    KNOWN_FAMILIES,
    IndexFamily,
    IndexRateProvider,
    LoadState,
    ManualRate,
    parse_source,
    table_from_rows,
)


ROWS = [
    {"id": 2, "mes_ano": "Fev/25", "cub_nacional": 0.2, "ipca": 0.3, "igpm": None, "incc": 0.4},
    {"id": 1, "mes_ano": "Jan/25", "cub_nacional": 0.1, "ipca": -0.1, "igpm": 1.0, "incc": 0.5},
]


def test_manual_rate_is_constant():
    provider = IndexRateProvider.with_fallback()
    assert math.isclose(provider.monthly_rate(ManualRate(0.8), 0), 0.008)
    assert provider.monthly_rate(ManualRate(0.8), 37, cycle_offset=5) == provider.monthly_rate(ManualRate(0.8), 0)
    assert provider.monthly_rate(ManualRate(None), 3) == 0.0


def test_family_rate_is_periodic():
    provider = IndexRateProvider.with_fallback()
    for family in KNOWN_FAMILIES:
        source = IndexFamily(family)
        for offset in (0, 5, 11):
            for month in range(24):
                for k in range(4):
                    assert provider.monthly_rate(source, month, offset) == provider.monthly_rate(source, month + 12 * k, offset)


def test_cycle_offset_selects_position():
    provider = IndexRateProvider.with_fallback()
    assert math.isclose(provider.monthly_rate(IndexFamily("IPCA"), 0, cycle_offset=3), -0.0002)
    assert math.isclose(provider.monthly_rate(IndexFamily("IGP_M"), 10), -0.0034)


def test_unknown_family_returns_zero():
    provider = IndexRateProvider.with_fallback()
    assert provider.monthly_rate(IndexFamily("SELIC"), 4) == 0.0


def test_parse_source_normalizes_modes():
    assert parse_source("cub") == IndexFamily("CUB_NACIONAL")
    assert parse_source("igp-m") == IndexFamily("IGP_M")
    assert parse_source("MANUAL", 0.5) == ManualRate(0.5)
    assert parse_source(None) == ManualRate(None)
    assert IndexFamily("incc").name == "INCC_NACIONAL"


def test_cumulative_factor():
    provider = IndexRateProvider.with_fallback()
    assert math.isclose(provider.cumulative_factor(ManualRate(1.0), 12), 1.01 ** 12)
    assert provider.cumulative_factor(IndexFamily("IPCA"), 0) == 1.0
    expected = 1.0
    for rate in FALLBACK_TABLE["CUB_NACIONAL"]:
        expected *= 1 + rate / 100
    assert math.isclose(provider.accumulated_percent(IndexFamily("CUB_NACIONAL")), (expected - 1) * 100)


def test_rates_before_loading_use_fallback_without_loading():
    provider = IndexRateProvider(fetch_rows=lambda: None)
    assert math.isclose(provider.monthly_rate(IndexFamily("CUB_NACIONAL"), 0), 0.0059)
    assert provider.state is LoadState.UNLOADED


def test_table_from_rows_orders_by_id():
    table, periods = table_from_rows(ROWS)
    assert table["IPCA"] == (-0.1, 0.3)
    assert table["IGP_M"] == (1.0, 0.0)
    assert periods == ("Jan/25", "Fev/25")


@pytest.mark.asyncio
async def test_no_source_configured_loads_fallback():
    provider = IndexRateProvider()
    await provider.ensure_loaded()
    assert provider.state is LoadState.LOADED
    assert provider.source == "fallback"
    assert provider.fetch_count == 0


@pytest.mark.asyncio
async def test_ensure_loaded_fetches_once():
    calls = []

    async def fetch():
        calls.append(1)
        return ROWS

    provider = IndexRateProvider(fetch_rows=fetch)
    await provider.ensure_loaded()
    first = dict(provider.table)
    await provider.ensure_loaded()
    assert len(calls) == 1
    assert dict(provider.table) == first
    assert provider.source == "remote"
    assert math.isclose(provider.monthly_rate(IndexFamily("IPCA"), 1), 0.003)


@pytest.mark.asyncio
async def test_concurrent_callers_share_one_fetch():
    calls = []

    async def fetch():
        calls.append(1)
        await asyncio.sleep(0.01)
        return ROWS

    provider = IndexRateProvider(fetch_rows=fetch)
    await asyncio.gather(*[provider.ensure_loaded() for _ in range(5)])
    assert len(calls) == 1
    assert provider.state is LoadState.LOADED


@pytest.mark.asyncio
async def test_timeout_falls_back():
    async def fetch():
        await asyncio.sleep(1)
        return ROWS

    provider = IndexRateProvider(fetch_rows=fetch, timeout=0.01)
    await provider.ensure_loaded()
    assert provider.source == "fallback"
    assert provider.table["IPCA"] == FALLBACK_TABLE["IPCA"]


@pytest.mark.asyncio
async def test_fetch_error_and_empty_rows_fall_back():
    async def broken():
        raise ConnectionError("offline")

    async def empty():
        return []

    for fetch in (broken, empty):
        provider = IndexRateProvider(fetch_rows=fetch)
        await provider.ensure_loaded()
        assert provider.state is LoadState.LOADED
        assert provider.source == "fallback"


@pytest.mark.asyncio
async def test_malformed_rows_fall_back_and_stay_loaded():
    async def bad_value():
        return [{"id": 1, "ipca": "n/a"}]

    async def not_a_mapping():
        return [[1, 2, 3]]

    for fetch in (bad_value, not_a_mapping):
        provider = IndexRateProvider(fetch_rows=fetch)
        await provider.ensure_loaded()
        assert provider.state is LoadState.LOADED
        assert provider.source == "fallback"
        assert provider.table["IPCA"] == FALLBACK_TABLE["IPCA"]
        # later calls reuse the loaded fallback
        await provider.ensure_loaded()
        assert provider.fetch_count == 1


@pytest.mark.asyncio
async def test_remote_rows_over_http():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["order"] = request.url.params.get("order")
        seen["apikey"] = request.headers.get("apikey")
        return httpx.Response(200, json=ROWS)

    provider = IndexRateProvider(
        base_url="https://example.supabase.co/",
        api_key="secret",
        transport=httpx.MockTransport(handler),
    )
    await provider.ensure_loaded()
    assert seen == {"path": "/rest/v1/indices_economicos", "order": "id.asc", "apikey": "secret"}
    assert provider.source == "remote"
    assert provider.table["CUB_NACIONAL"] == (0.1, 0.2)
    assert provider.periods == ("Jan/25", "Fev/25")


@pytest.mark.asyncio
async def test_http_error_falls_back():
    provider = IndexRateProvider(
        base_url="https://example.supabase.co",
        transport=httpx.MockTransport(lambda request: httpx.Response(503)),
    )
    await provider.ensure_loaded()
    assert provider.source == "fallback"
    assert provider.fetch_count == 1
