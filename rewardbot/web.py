"""GET /device?token=... — the page the verify site redirects to.

Fingerprints the browser from its user agent and address and hands the
token to the identity registry.
"""

import logging

from aiohttp import web

from rewardbot.errors import DeviceCollision, InvalidToken
from rewardbot.identity import compute_fingerprint

logger = logging.getLogger(__name__)

REGISTRY_KEY = web.AppKey("identity_registry", object)

_MISSING_TOKEN = "<h3>Missing token</h3><p>Open the verification link from the bot.</p>"
_INVALID_TOKEN = (
    "<h3>Invalid or expired token</h3>"
    "<p>Please request a new verification link from the bot using /verify.</p>"
)
_LINKED = (
    "<h3>Device linked</h3><p>Device verification successful. Return to Telegram, "
    "join the required channel, and then send /start to complete registration.</p>"
)
_COLLISION = (
    "<h3>Device linked</h3><p>This device is already used by another account. "
    "Your account has been flagged. Return to Telegram.</p>"
)


def client_address(request: web.Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.remote or ""


async def device(request: web.Request) -> web.Response:
    token = request.query.get("token")
    if not token:
        return web.Response(status=400, text=_MISSING_TOKEN, content_type="text/html")

    fingerprint = compute_fingerprint(request.headers.get("User-Agent"), client_address(request))
    registry = request.app[REGISTRY_KEY]
    try:
        link = await registry.register_device(token, fingerprint)
        link.raise_for_collision()
    except InvalidToken:
        logger.info("Rejected device verification with unknown token")
        return web.Response(status=400, text=_INVALID_TOKEN, content_type="text/html")
    except DeviceCollision as e:
        logger.info("Device page for user %s: device belongs to user %s", e.user_id, e.owner_id)
        return web.Response(text=_COLLISION, content_type="text/html")

    return web.Response(text=_LINKED, content_type="text/html")


def create_app(registry) -> web.Application:
    app = web.Application()
    app[REGISTRY_KEY] = registry
    app.router.add_get("/device", device)
    return app
