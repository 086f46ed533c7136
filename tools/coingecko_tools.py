# =============================================================================
# tools/coingecko_tools.py  —  Crypto Market Tool Catalog
# =============================================================================
#
# Four read-only tools over CoinGecko.  apiAccess is always on (the public
# host needs no key); COINGECKO_API_KEY only switches the client to the pro
# host, it does not unlock extra tools.
# =============================================================================

from __future__ import annotations

from typing import Any, Mapping

from core.capabilities import is_present
from core.coingecko import CAPABILITIES, SOURCE, CoinGeckoClient
from core.config import ServerSettings
from core.context import SourceDefinition
from core.models import ParamSpec, Tier
from core.registry import SourceCatalog, define_tool
from core.safe_call import SafeInvoker

TOKEN_ID = ParamSpec("tokenId", "string", "The CoinGecko token ID (e.g., 'bitcoin')", required=True)


def catalog(invoker: SafeInvoker) -> SourceCatalog:
    descriptors = (
        define_tool(
            invoker,
            name="coingecko-get-price",
            description="Gets current price of a cryptocurrency token in specified currency.",
            params=(
                TOKEN_ID,
                ParamSpec("currency", "string", "The currency to get the price in (e.g., 'usd')", default="usd"),
            ),
            call=lambda client, args: client.get_price(args["tokenId"], args["currency"].lower()),
            fallback=None,
            placeholder="Price not found",
        ),
        define_tool(
            invoker,
            name="coingecko-get-contracts",
            description="Gets blockchain contract addresses for a token across different chains.",
            params=(ParamSpec("tokenId", "string", "The CoinGecko token ID (e.g., 'usd-coin')", required=True),),
            call=lambda client, args: client.get_contracts(args["tokenId"]),
            fallback=None,
            placeholder="Contracts not found",
        ),
        define_tool(
            invoker,
            name="coingecko-search",
            description="Searches for cryptocurrency tokens by name or symbol.",
            params=(
                ParamSpec("query", "string", "The search query", required=True),
                ParamSpec(
                    "limit", "integer", "Maximum number of results (default: 3, max: 100)",
                    default=3, minimum=1, maximum=100,
                ),
            ),
            call=lambda client, args: client.search(args["query"], args["limit"]),
            fallback=[],
            placeholder="No results found",
        ),
        define_tool(
            invoker,
            name="coingecko-trending",
            description="Gets currently trending tokens in the cryptocurrency market.",
            params=(
                ParamSpec(
                    "limit", "integer", "Maximum number of results (default: 3)",
                    default=3, minimum=1, maximum=10,
                ),
            ),
            call=lambda client, args: client.trending(args["limit"]),
            fallback=[],
            placeholder="No trending tokens found",
        ),
    )

    return SourceCatalog(
        source=SOURCE,
        floors={Tier.PUBLIC: frozenset({"apiAccess"})},
        descriptors=descriptors,
    )


def make_factory(configuration: Mapping[str, str], settings: ServerSettings):
    api_key = configuration.get("COINGECKO_API_KEY")

    async def factory() -> CoinGeckoClient:
        return CoinGeckoClient(
            api_key.strip() if is_present(api_key) else None,
            timeout=settings.request_timeout,
        )

    return factory


DEFINITION = SourceDefinition(
    capabilities=CAPABILITIES,
    minimum_capability="apiAccess",
    make_factory=make_factory,
    catalog=catalog,
)
