"""XRocket payment rail client.

Only the two calls the bot needs: the bot's operating balance and a transfer
to a TON wallet. Every failure surfaces as RailError.
"""

import logging
from typing import Any, Optional

import httpx

from rewardbot.errors import RailError
from rewardbot.money import from_units, to_units

logger = logging.getLogger(__name__)


def _dig(data: Any, *path: str) -> Any:
    for key in path:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


class XRocketRail:
    def __init__(
        self,
        api_base: str,
        token: str,
        timeout: float = 15.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._token = token
        self._client = client or httpx.AsyncClient(
            base_url=api_base,
            timeout=httpx.Timeout(timeout, connect=5.0),
            headers={"User-Agent": "rewardbot/1.0"},
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def _post(self, path: str, payload: dict) -> Any:
        try:
            response = await self._client.post(path, json={"token": self._token, **payload})
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise RailError(f"{e.response.status_code} {e.response.text}") from e
        except httpx.HTTPError as e:
            raise RailError(f"{type(e).__name__}: {e}") from e
        except ValueError as e:
            raise RailError(f"unreadable response from {path}") from e
        if isinstance(data, dict) and data.get("success") is False:
            raise RailError(str(data.get("message") or data.get("errors") or "rail refused the request"))
        return data

    async def operating_balance(self) -> int:
        data = await self._post("/get_balance", {})
        raw = _dig(data, "result", "balance")
        if raw is None:
            raw = _dig(data, "balance")
        if raw is None:
            raw = _dig(data, "result", "amount")
        if raw is None:
            raise RailError("balance missing in rail response")
        try:
            return to_units(raw)
        except ValueError as e:
            raise RailError(f"bad balance in rail response: {raw!r}") from e

    async def transfer(self, wallet: str, amount: int) -> str:
        data = await self._post("/transfer", {"to": wallet, "amount": str(from_units(amount))})
        tx_id = (
            _dig(data, "result", "tx", "id")
            or _dig(data, "result", "txId")
            or _dig(data, "data", "id")
            or _dig(data, "tx_id")
            or _dig(data, "id")
        )
        if not tx_id:
            # 2xx without an id still means the money left
            logger.warning("Rail transfer to %s returned no transaction id: %s", wallet, data)
            tx_id = "unknown"
        logger.info("Rail transfer of %s to %s: tx %s", amount, wallet, tx_id)
        return str(tx_id)
