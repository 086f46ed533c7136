# =============================================================================
# main.py  —  Entry Point for the Data Skills MCP Server
# =============================================================================
#
# HOW TO RUN:
#   python main.py                          # stdio (for Claude Desktop & co.)
#   python main.py --transport http --port 3000
#
# WHAT HAPPENS:
#   1. Loads .env (credentials, timeouts, transport) into the environment
#   2. Classifies each data source's capabilities from those credentials
#   3. Builds the tool registry: only tools the credentials allow
#   4. Serves the tools and the <source>://features resources over MCP
#
# CONFIGURATION:
#   Every flag below can also be set with an environment variable
#   (MCP_TRANSPORT, MCP_HOST, MCP_PORT, LOG_LEVEL).  Flags win.
#
# CREDENTIALS (all optional, each one unlocks more tools):
#   TWITTER_USERNAME / TWITTER_PASSWORD    → read-only Twitter tools
#   TWITTER_EMAIL                          → timelines, DMs, posting
#   COINGECKO_API_KEY                      → CoinGecko pro host
#   Substack needs nothing.
# =============================================================================

import argparse
import dataclasses

from dotenv import load_dotenv

# Load environment variables from .env BEFORE reading settings, because
# everything downstream reads os.environ.
load_dotenv()

from core.config import TRANSPORTS, load_settings
from core.context import build_context
from tools.mcp_server import SOURCES, configure_logging, run_server


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="MCP server exposing Twitter, Substack and CoinGecko as agent tools.",
    )
    parser.add_argument("--transport", choices=TRANSPORTS, help="MCP transport (default: stdio)")
    parser.add_argument("--host", help="Bind address for sse/http (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, help="Port for sse/http (default: 3000)")
    parser.add_argument("--log-level", help="Logging level (default: INFO)")
    return parser.parse_args(argv)


def main(argv=None) -> None:
    args = parse_args(argv)

    # =========================================================================
    # Step 1: Settings (environment, then CLI overrides)
    # =========================================================================
    settings = load_settings()
    overrides = {
        "transport": args.transport,
        "host": args.host,
        "port": args.port,
        "log_level": args.log_level.upper() if args.log_level else None,
    }
    settings = dataclasses.replace(
        settings, **{key: value for key, value in overrides.items() if value is not None}
    )
    configure_logging(settings.log_level)

    # =========================================================================
    # Step 2: Classify capabilities and build the registry (once)
    # =========================================================================
    context = build_context(SOURCES, settings)

    # =========================================================================
    # Step 3: Serve until the host disconnects
    # =========================================================================
    run_server(context)


# =============================================================================
# Script entry point
# =============================================================================
if __name__ == "__main__":
    main()
