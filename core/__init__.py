# =============================================================================
# core/__init__.py
# =============================================================================
# This package contains ALL logic of the data-skills server: capability
# classification, parameter validation, safe invocation, the registry
# builder and the upstream clients for Twitter, Substack and CoinGecko.
#
# CRITICAL ARCHITECTURAL RULE:
#   Nothing in this package imports FastMCP.  A ToolDescriptor is a plain
#   record; tools/mcp_server.py is the only place that knows about MCP.
#   Every piece here can be tested with fake clients and no network.
# =============================================================================
