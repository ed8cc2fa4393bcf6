import json

import httpx
import pytest

from rewardbot.errors import RailError
from rewardbot.money import to_units
from rewardbot.rail import XRocketRail


def make_rail(handler):
    client = httpx.AsyncClient(
        base_url="https://pay.example/api", transport=httpx.MockTransport(handler)
    )
    return XRocketRail("https://pay.example/api", "secret", client=client)


@pytest.mark.asyncio
async def test_operating_balance_parses_decimal():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"result": {"balance": "12.5"}})

    rail = make_rail(handler)
    assert await rail.operating_balance() == to_units("12.5")
    assert seen == {"path": "/api/get_balance", "body": {"token": "secret"}}
    await rail.close()


@pytest.mark.asyncio
async def test_transfer_returns_tx_id():
    def handler(request):
        body = json.loads(request.content)
        assert body["to"] == "UQwallet123"
        assert body["amount"] == "0.500000"
        return httpx.Response(200, json={"result": {"tx": {"id": "abc"}}})

    rail = make_rail(handler)
    assert await rail.transfer("UQwallet123", to_units("0.5")) == "abc"
    await rail.close()


@pytest.mark.asyncio
async def test_http_error_becomes_rail_error():
    rail = make_rail(lambda request: httpx.Response(502, text="bad gateway"))
    with pytest.raises(RailError) as exc:
        await rail.transfer("UQwallet123", 1)
    assert exc.value.reason.startswith("502")
    await rail.close()


@pytest.mark.asyncio
async def test_network_error_becomes_rail_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    rail = make_rail(handler)
    with pytest.raises(RailError):
        await rail.operating_balance()
    await rail.close()


@pytest.mark.asyncio
async def test_refusal_becomes_rail_error():
    rail = make_rail(lambda request: httpx.Response(200, json={"success": False, "message": "no funds"}))
    with pytest.raises(RailError) as exc:
        await rail.transfer("UQwallet123", 1)
    assert exc.value.reason == "no funds"
    await rail.close()


@pytest.mark.asyncio
async def test_missing_balance_is_rail_error():
    rail = make_rail(lambda request: httpx.Response(200, json={"result": {}}))
    with pytest.raises(RailError):
        await rail.operating_balance()
    await rail.close()
