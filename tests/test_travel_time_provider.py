import httpx
import pytest

from core.exceptions import ProviderFailure
from models.eta import TravelMode
from services.travel_time_provider import GoogleDirectionsProvider, map_travel_mode

OK_BODY = {
    "status": "OK",
    "routes": [{
        "legs": [{
            "duration": {"value": 600, "text": "10 分鐘"},
            "distance": {"value": 2000, "text": "2.0 公里"},
        }],
    }],
}


def _provider(handler, api_key="test-key"):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GoogleDirectionsProvider(api_key=api_key, base_url="https://directions.test/json", client=client)


@pytest.mark.parametrize("mode, expected", [
    (TravelMode.MOTORCYCLE, "driving"),
    (TravelMode.DRIVING, "driving"),
    (TravelMode.TRANSIT, "transit"),
    (TravelMode.WALKING, "walking"),
    (TravelMode.BICYCLING, "bicycling"),
])
def test_map_travel_mode(mode, expected):
    assert map_travel_mode(mode) == expected


@pytest.mark.asyncio
async def test_query_builds_request_and_normalizes():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=OK_BODY)

    provider = _provider(handler)
    result = await provider.query((25.038, 121.57), (25.0478, 121.517), TravelMode.MOTORCYCLE, 1_700_000_000)

    assert result.duration_seconds == 600
    assert result.duration_text == "10 分鐘"
    assert result.distance_text == "2.0 公里"
    assert result.distance_meters == 2000

    params = seen[0].url.params
    assert params["origin"] == "25.038,121.57"
    assert params["destination"] == "25.0478,121.517"
    assert params["mode"] == "driving"
    assert params["departure_time"] == "1700000000"
    assert params["language"] == "zh-TW"
    assert params["key"] == "test-key"


@pytest.mark.asyncio
async def test_non_ok_status_is_failure():
    provider = _provider(lambda request: httpx.Response(200, json={"status": "ZERO_RESULTS", "routes": []}))
    with pytest.raises(ProviderFailure) as info:
        await provider.query((25.0, 121.5), (25.1, 121.6), TravelMode.TRANSIT, 0)
    assert info.value.kind == "status"


@pytest.mark.asyncio
async def test_empty_routes_is_failure():
    provider = _provider(lambda request: httpx.Response(200, json={"status": "OK", "routes": []}))
    with pytest.raises(ProviderFailure) as info:
        await provider.query((25.0, 121.5), (25.1, 121.6), TravelMode.DRIVING, 0)
    assert info.value.kind == "no_route"


@pytest.mark.asyncio
async def test_http_error_is_failure():
    provider = _provider(lambda request: httpx.Response(503, text="unavailable"))
    with pytest.raises(ProviderFailure) as info:
        await provider.query((25.0, 121.5), (25.1, 121.6), TravelMode.DRIVING, 0)
    assert info.value.kind == "http_status"
    assert info.value.status == 503


@pytest.mark.asyncio
async def test_transport_error_is_failure():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    provider = _provider(handler)
    with pytest.raises(ProviderFailure) as info:
        await provider.query((25.0, 121.5), (25.1, 121.6), TravelMode.WALKING, 0)
    assert info.value.kind == "transport"


@pytest.mark.asyncio
async def test_malformed_leg_is_failure():
    body = {"status": "OK", "routes": [{"legs": [{"duration": {"text": "?"}}]}]}
    provider = _provider(lambda request: httpx.Response(200, json=body))
    with pytest.raises(ProviderFailure) as info:
        await provider.query((25.0, 121.5), (25.1, 121.6), TravelMode.WALKING, 0)
    assert info.value.kind == "bad_response"


@pytest.mark.asyncio
async def test_missing_api_key_never_calls_out():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json=OK_BODY)

    provider = _provider(handler, api_key=None)
    with pytest.raises(ProviderFailure) as info:
        await provider.query((25.0, 121.5), (25.1, 121.6), TravelMode.DRIVING, 0)
    assert info.value.kind == "not_configured"
    assert calls == []
