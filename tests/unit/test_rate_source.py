"""
Tests for the live/fallback rate source.
"""
import httpx
import pytest

from storefront_api.core.exceptions import RateProviderError, UpstreamError
from storefront_api.modules.shipping.fallback import FallbackRateTable
from storefront_api.modules.shipping.rate_source import RateSource
from storefront_api.modules.shipping.types import FALLBACK_SOURCE, LIVE_SOURCE, Package, PackagePlan


@pytest.fixture
def plan():
    return PackagePlan(packages=[Package(4.0, 12.0, 9.0, 3.0)], total_weight=4.0, max_dimension=12.0)


def _source(provider, table, origin, timeout=1.0):
    return RateSource(provider=provider, fallback_table=table, origin=origin, timeout=timeout)


@pytest.mark.asyncio
async def test_live_rates_are_sorted(make_provider, live_options, fallback_table, origin_address, destination_address, plan):
    provider = make_provider(options=live_options)
    lookup = await _source(provider, fallback_table, origin_address).get_options(destination_address, plan)

    assert lookup.source == LIVE_SOURCE
    assert [o.rate for o in lookup.options] == [11.25, 18.40, 32.10]
    assert lookup.live_error is None
    origin, destination, rated_plan = provider.calls[0]
    assert origin == origin_address
    assert destination == destination_address
    assert rated_plan is plan


@pytest.mark.asyncio
async def test_provider_error_uses_fallback(make_provider, fallback_table, origin_address, destination_address, plan):
    provider = make_provider(error=RateProviderError("ShipEngine API error", provider="shipengine", http_status=502))
    lookup = await _source(provider, fallback_table, origin_address).get_options(destination_address, plan)

    assert lookup.source == FALLBACK_SOURCE
    assert [o.rate for o in lookup.options] == [11.95, 17.95]
    assert lookup.live_error == "ShipEngine API error"


@pytest.mark.asyncio
async def test_network_error_uses_fallback(make_provider, fallback_table, origin_address, destination_address, plan):
    provider = make_provider(error=httpx.ConnectError("connection refused"))
    lookup = await _source(provider, fallback_table, origin_address).get_options(destination_address, plan)

    assert lookup.source == FALLBACK_SOURCE
    assert lookup.options


@pytest.mark.asyncio
async def test_timeout_uses_fallback(make_provider, live_options, fallback_table, origin_address, destination_address, plan):
    provider = make_provider(options=live_options, delay=1.0)
    lookup = await _source(provider, fallback_table, origin_address, timeout=0.05).get_options(destination_address, plan)

    assert lookup.source == FALLBACK_SOURCE
    assert "timed out" in lookup.live_error


@pytest.mark.asyncio
async def test_empty_live_result_uses_fallback(make_provider, fallback_table, origin_address, destination_address, plan):
    lookup = await _source(make_provider(options=[]), fallback_table, origin_address).get_options(destination_address, plan)

    assert lookup.source == FALLBACK_SOURCE
    assert lookup.live_error == "Rate provider returned no rates"


@pytest.mark.asyncio
async def test_no_provider_uses_fallback(fallback_table, origin_address, destination_address, plan):
    lookup = await _source(None, fallback_table, origin_address).get_options(destination_address, plan)
    assert lookup.source == FALLBACK_SOURCE


@pytest.mark.asyncio
async def test_failure_without_table_raises_upstream(make_provider, origin_address, destination_address, plan):
    provider = make_provider(error=RateProviderError("down"))
    source = _source(provider, FallbackRateTable(), origin_address)

    with pytest.raises(UpstreamError) as exc:
        await source.get_options(destination_address, plan)
    assert exc.value.details["live_error"] == "down"


@pytest.mark.asyncio
async def test_unexpected_provider_failure_uses_fallback(make_provider, fallback_table, origin_address, destination_address, plan):
    provider = make_provider(error=AttributeError("'str' object has no attribute 'get'"))
    lookup = await _source(provider, fallback_table, origin_address).get_options(destination_address, plan)

    assert lookup.source == FALLBACK_SOURCE
    assert [o.rate for o in lookup.options] == [11.95, 17.95]
    assert lookup.live_error == "Unexpected AttributeError from rate provider"


@pytest.mark.asyncio
async def test_unexpected_provider_failure_without_table_raises_upstream(make_provider, origin_address, destination_address, plan):
    provider = make_provider(error=KeyError("rates"))
    with pytest.raises(UpstreamError):
        await _source(provider, FallbackRateTable(), origin_address).get_options(destination_address, plan)
