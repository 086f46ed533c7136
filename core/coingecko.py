# =============================================================================
# core/coingecko.py  —  Crypto Market (CoinGecko) API Client
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   Async wrapper over the CoinGecko v3 REST API: simple price, coin
#   contract addresses, search and trending.
#
# FREE vs PRO:
#   With COINGECKO_API_KEY set we talk to the pro host and send the key in
#   the ``x-cg-pro-api-key`` header.  Without it we use the public host,
#   which is rate limited; a 429 there is just an upstream failure and the
#   safe invoker falls back.
# =============================================================================

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import httpx

from core.capabilities import SourceCapabilities

SOURCE = "coingecko"
CAPABILITIES = SourceCapabilities(
    source=SOURCE,
    requirements={
        "apiAccess": (),
        "proAccess": ("COINGECKO_API_KEY",),
    },
)

BASE_URL = "https://api.coingecko.com/api/v3"
PRO_URL = "https://pro-api.coingecko.com/api/v3"
API_KEY_HEADER = "x-cg-pro-api-key"


def _coin_summary(coin: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": coin["id"],
        "name": coin.get("name"),
        "symbol": (coin.get("symbol") or "").upper(),
        "market_cap_rank": coin.get("market_cap_rank"),
    }


class CoinGeckoClient:
    """Async client for the CoinGecko REST API."""

    def __init__(
        self,
        api_key: str | None = None,
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {"Accept": "application/json"}
        if api_key:
            headers[API_KEY_HEADER] = api_key
        self.base_url = PRO_URL if api_key else BASE_URL
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            headers=headers,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        response = await self._http.get(path, params=params)
        response.raise_for_status()
        return response.json()

    async def get_price(self, token_id: str, currency: str = "usd") -> dict[str, Any] | None:
        """Current price of ``token_id`` in ``currency``, or None if CoinGecko has none."""
        data = await self._get_json(
            "/simple/price",
            params={
                "ids": token_id,
                "vs_currencies": currency,
                "include_last_updated_at": "true",
            },
        )
        quote = data.get(token_id) if isinstance(data, dict) else None
        if not quote or currency not in quote:
            return None

        last_updated = quote.get("last_updated_at")
        return {
            "id": token_id,
            "symbol": token_id,
            "name": token_id,
            "current_price": quote[currency],
            "last_updated": (
                datetime.fromtimestamp(last_updated, tz=timezone.utc).isoformat()
                if last_updated
                else None
            ),
        }

    async def get_contracts(self, token_id: str) -> dict[str, Any] | None:
        """Contract addresses of ``token_id`` on every platform it lives on."""
        data = await self._get_json(
            f"/coins/{token_id}",
            params={
                "localization": "false",
                "tickers": "false",
                "market_data": "false",
                "community_data": "false",
                "developer_data": "false",
            },
        )
        if not isinstance(data, dict) or "id" not in data:
            return None
        return {
            "id": data["id"],
            "symbol": data.get("symbol"),
            "name": data.get("name"),
            "platforms": data.get("platforms") or {},
        }

    async def search(self, query: str, limit: int = 10) -> list[dict[str, Any]]:
        data = await self._get_json("/search", params={"query": query})
        coins = data.get("coins") or []
        return [_coin_summary(coin) for coin in coins[:limit]]

    async def trending(self, limit: int = 10) -> list[dict[str, Any]]:
        data = await self._get_json("/search/trending")
        coins = data.get("coins") or []
        return [_coin_summary(entry["item"]) for entry in coins[:limit]]
