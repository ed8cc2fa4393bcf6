import pytest
from aiohttp.test_utils import make_mocked_request

from rewardbot.database.models import User
from rewardbot.identity import compute_fingerprint
from rewardbot.web import create_app, device

UA = "Mozilla/5.0 (Android)"


def request_for(app, path, address="198.51.100.23"):
    return make_mocked_request(
        "GET", path, headers={"User-Agent": UA, "X-Forwarded-For": f"{address}, 10.0.0.1"}, app=app
    )


@pytest.mark.asyncio
async def test_missing_token(identity):
    app = create_app(identity)
    response = await device(request_for(app, "/device"))
    assert response.status == 400
    assert "Missing token" in response.text


@pytest.mark.asyncio
async def test_links_device_and_rejects_replay(identity, store):
    app = create_app(identity)
    token = await identity.issue_token(5)

    response = await device(request_for(app, f"/device?token={token}"))
    assert response.status == 200
    assert "successful" in response.text
    assert (await store.get(User, 5)).device_fingerprint == compute_fingerprint(UA, "198.51.0.0")

    replay = await device(request_for(app, f"/device?token={token}"))
    assert replay.status == 400
    assert "Invalid or expired" in replay.text


@pytest.mark.asyncio
async def test_collision_page(identity, store):
    app = create_app(identity)
    await device(request_for(app, f"/device?token={await identity.issue_token(5)}"))

    response = await device(request_for(app, f"/device?token={await identity.issue_token(6)}", "198.51.7.7"))
    assert response.status == 200
    assert "already used by another account" in response.text
    assert (await store.get(User, 6)).banned is True
