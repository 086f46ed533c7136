"""Tests for the FastMCP bridge and the command line."""

import json

import httpx
import pytest
from fastmcp import Client

from core.coingecko import CoinGeckoClient
from core.context import build_context
from core.substack import SubstackClient
from tools.mcp_server import SOURCES, DescriptorTool, create_server


def _substack_client():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/v1/archive":
            return httpx.Response(200, json=[{"slug": "hello", "title": "Hello", "post_date": "2024-01-01"}])
        return httpx.Response(404)

    return SubstackClient(transport=httpx.MockTransport(handler))


def _coingecko_client():
    return CoinGeckoClient(
        transport=httpx.MockTransport(lambda request: httpx.Response(429, json={"status": "rate limited"}))
    )


@pytest.fixture
def context(static_provider):
    return build_context(
        SOURCES,
        env={},
        providers={
            "substack": static_provider(_substack_client()),
            "coingecko": static_provider(_coingecko_client()),
        },
    )


class TestCreateServer:
    """Registered descriptors become FastMCP tools and resources."""

    @pytest.mark.asyncio
    async def test_tools_match_registry(self, context):
        mcp = create_server(context)
        tools = await mcp.get_tools()

        assert set(tools) == {descriptor.name for descriptor in context.registry.get_all()}
        assert "twitter-get-features" in tools
        assert "twitter-get-profile" not in tools
        assert all(isinstance(tool, DescriptorTool) for tool in tools.values())

    @pytest.mark.asyncio
    async def test_tool_schema_published(self, context):
        tools = await create_server(context).get_tools()
        schema = tools["substack-get-recent-posts"].parameters
        assert schema["properties"]["limit"]["maximum"] == 50
        assert schema["required"] == ["substackId"]

    @pytest.mark.asyncio
    async def test_tool_run_returns_single_text_item(self, context):
        tools = await create_server(context).get_tools()

        result = await tools["substack-get-post-slugs"].run({"substackId": "example", "limit": 999})

        assert len(result.content) == 1
        assert json.loads(result.content[0].text) == [
            {"slug": "hello", "title": "Hello", "post_date": "2024-01-01"}
        ]

    @pytest.mark.asyncio
    async def test_resources_registered(self, context):
        resources = await create_server(context).get_resources()
        assert {str(uri) for uri in resources} == {
            "substack://features",
            "twitter://features",
            "coingecko://features",
        }

    @pytest.mark.asyncio
    async def test_twitter_features_name_unsupported_tools(self, context):
        """Grok chat and article lookup are missing on purpose, and say so."""
        resources = await create_server(context).get_resources()
        twitter = next(resource for uri, resource in resources.items() if str(uri) == "twitter://features")
        description = twitter.description
        assert "Grok chat" in description
        assert "article" in description


class TestInMemoryClient:
    """The server as an MCP client sees it."""

    @pytest.mark.asyncio
    async def test_list_and_call(self, context):
        async with Client(create_server(context)) as client:
            names = [tool.name for tool in await client.list_tools()]
            assert names.index("substack-get-features") < names.index("substack-get-posts")

            result = await client.call_tool("coingecko-get-price", {"tokenId": "bitcoin"})
            assert result.content[0].text == "Price not found"

    @pytest.mark.asyncio
    async def test_read_features_resource(self, context):
        async with Client(create_server(context)) as client:
            contents = await client.read_resource("twitter://features")
            features = json.loads(contents[0].text)
        assert features["basicAuth"] is False
        assert set(features) == {"basicAuth", "emailAuth", "apiAuth", "fullAuth", "grokAccess"}


class TestCommandLine:
    def test_parse_args(self):
        from main import parse_args

        args = parse_args(["--transport", "http", "--port", "8080"])
        assert args.transport == "http"
        assert args.port == 8080
        assert args.host is None

    def test_rejects_unknown_transport(self):
        from main import parse_args

        with pytest.raises(SystemExit):
            parse_args(["--transport", "websocket"])
