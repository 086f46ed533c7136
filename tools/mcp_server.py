# =============================================================================
# tools/mcp_server.py  —  FastMCP Tool Server (every source in one place)
# =============================================================================
#
# WHAT THIS FILE DOES:
#   Turns the AppContext built by core/context.py into a FastMCP server.
#   It does not decide WHICH tools exist (the registry builder already did
#   that from the capability snapshots); it only translates each
#   ToolDescriptor into an MCP tool and each features snapshot into an
#   MCP resource.
#
# HOW IT WORKS (the flow):
#   1. The agent lists tools and sees only what the credentials allow
#   2. It calls a tool by name via MCP (e.g., "substack-get-recent-posts")
#   3. FastMCP routes the call to DescriptorTool.run()
#   4. run() hands the raw arguments to the descriptor's handler, which
#      validates, calls upstream through the safe invoker and shapes the
#      result into one text item
#   5. The agent receives that text, or a placeholder/fallback message;
#      never a stack trace
#
# TOOL NAMING CONVENTIONS:
#   <source>-get-*      → read-only retrieval (idempotent, safe to retry)
#   <source>-search-*   → query with filters (idempotent, safe to retry)
#   twitter-send-*, -like-*, -retweet, -follow-* → writes; only registered
#   when the account has full authentication
#
# RUNNING THIS SERVER:
#     a) Standalone:   python -m tools.mcp_server
#     b) Via main.py:  python main.py --transport http --port 3000
# =============================================================================

from __future__ import annotations

import json
import logging
import sys
from contextlib import asynccontextmanager
from typing import Any, Callable

from fastmcp import FastMCP
from fastmcp.tools.tool import Tool, ToolResult
from mcp.types import TextContent

# --- Import core logic ---
# Notice: core/ never imports FastMCP.  This module is the only bridge.
from core.config import load_settings
from core.context import AppContext, build_context
from core.models import ContentEnvelope, ToolDescriptor
from core.registry import features_uri
from tools import coingecko_tools, substack_tools, twitter_tools

SERVER_NAME = "data-skills-server"

# Registration order: the order tools appear in list_tools()
SOURCES = (
    substack_tools.DEFINITION,
    twitter_tools.DEFINITION,
    coingecko_tools.DEFINITION,
)

# =============================================================================
# Logging Setup
# =============================================================================
# We log to STDERR because with the stdio transport the MCP messages travel
# over STDOUT.  A single log line on stdout would corrupt the JSON-RPC
# stream and the host would drop the connection.
#
# ANSI COLOR CODES:
#     - CYAN for incoming requests (tool name + parameters)
#     - GREEN for responses
#     - YELLOW for status messages (startup, features)
# =============================================================================

_CYAN = "\033[36m"     # Requests (tool calls with params)
_GREEN = "\033[32m"    # Responses
_YELLOW = "\033[33m"   # Status/progress messages
_RESET = "\033[0m"     # Reset to default terminal color

# Responses can be whole newsletter posts; the log only needs the start
_MAX_LOGGED_RESPONSE = 500

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [MCP] %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
        force=True,
    )


def _log_request(tool_name: str, **params) -> None:
    """Log an incoming tool call with its parameters in CYAN."""
    param_str = ", ".join(f"{k}={v!r}" for k, v in params.items())
    logger.info(f"{_CYAN}{tool_name} called with: {param_str}{_RESET}")


def _log_status(message: str) -> None:
    """Log a status message in YELLOW."""
    logger.info(f"{_YELLOW}  → {message}{_RESET}")


def _log_response(tool_name: str, envelope: ContentEnvelope) -> ContentEnvelope:
    """Log the start of the tool response in GREEN, then return it."""
    text = envelope.first_text
    if len(text) > _MAX_LOGGED_RESPONSE:
        text = text[:_MAX_LOGGED_RESPONSE] + f"... ({len(envelope.first_text)} chars)"
    logger.info(f"{_GREEN}  ← {tool_name} response: {text}{_RESET}")
    return envelope


# =============================================================================
# DescriptorTool — one ToolDescriptor as a FastMCP tool
# =============================================================================
# FastMCP normally builds tools from decorated Python functions and
# validates arguments against the function signature.  Our tools are
# data (descriptors), and their handlers clamp out-of-range counts
# instead of rejecting them, so we subclass Tool directly: the JSON schema
# is published for discovery and run() passes arguments straight through.
# =============================================================================
class DescriptorTool(Tool):
    handler: Callable[..., Any]

    @classmethod
    def from_descriptor(cls, descriptor: ToolDescriptor) -> DescriptorTool:
        return cls(
            name=descriptor.name,
            description=descriptor.description,
            parameters=descriptor.parameter_schema(),
            handler=descriptor.handler,
            tags={descriptor.tier.name.lower()},
        )

    async def run(self, arguments: dict[str, Any]) -> ToolResult:
        _log_request(self.name, **(arguments or {}))
        envelope = _log_response(self.name, await self.handler(arguments or {}))
        return ToolResult(content=to_mcp_content(envelope))


def to_mcp_content(envelope: ContentEnvelope) -> list[TextContent]:
    return [TextContent(type="text", text=item.text) for item in envelope.items]


# =============================================================================
# Server construction
# =============================================================================
def _features_reader(context: AppContext, uri: str) -> Callable[[], str]:
    def read_features() -> str:
        return context.registry.read_resource(uri).first_text

    return read_features


def log_features(context: AppContext) -> None:
    for source, snapshot in context.snapshots().items():
        _log_status(f"Available {source} features: {json.dumps(snapshot.as_dict())}")


def create_server(context: AppContext | None = None) -> FastMCP:
    """Build the FastMCP server for ``context`` (built from the environment if omitted)."""
    context = context or build_context(SOURCES)

    @asynccontextmanager
    async def lifespan(server: FastMCP):
        try:
            yield
        finally:
            await context.aclose()

    mcp = FastMCP(SERVER_NAME, lifespan=lifespan)

    for source in context.sources:
        uri = features_uri(source)
        # Same text as the source's get-features tool, notes included
        features_tool = context.registry.get_by_name(f"{source}-get-features")
        mcp.resource(
            uri,
            name=f"{source}-features",
            description=features_tool.description if features_tool else f"Capability flags for {source}",
            mime_type="application/json",
        )(_features_reader(context, uri))

    for descriptor in context.registry.get_all():
        mcp.add_tool(DescriptorTool.from_descriptor(descriptor))

    _log_status(f"{len(context.registry)} tools registered")
    return mcp


def run_server(context: AppContext) -> None:
    """Start serving on the transport chosen in ``context.settings``."""
    settings = context.settings
    mcp = create_server(context)

    _log_status(f"Starting {SERVER_NAME} ({settings.transport})...")
    log_features(context)

    if settings.transport == "stdio":
        mcp.run()
    else:
        mcp.run(transport=settings.transport, host=settings.host, port=settings.port)


# =============================================================================
# Server entry point
# =============================================================================
# When run directly (python -m tools.mcp_server), serve over stdio with
# settings from the environment.  main.py adds CLI flags on top.
# =============================================================================
if __name__ == "__main__":
    from dotenv import load_dotenv

    load_dotenv()
    settings = load_settings()
    configure_logging(settings.log_level)
    run_server(build_context(SOURCES, settings))
