# =============================================================================
# tools/__init__.py
# =============================================================================
# This package contains the tool catalogs and the FastMCP server.
#
# ARCHITECTURAL ROLE:
#   tools/ is the "translation layer" between MCP and the core logic.
#     - *_tools.py declare, per data source, which tools exist, their
#       parameters, their upstream call and their placeholder texts.
#     - mcp_server.py turns the registered descriptors into FastMCP tools.
#
# WHAT TOOLS DO NOT DO:
#   - They do NOT talk HTTP or log in (that's core/substack.py & friends)
#   - They do NOT catch upstream errors (core/safe_call.py does, once)
#   - They do NOT decide whether a tool is allowed (the registry builder
#     checks the capability snapshot)
#
# TOOL CONTRACT QUALITY:
#   Each tool has a stable name ("<source>-<verb>-<noun>"), a description
#   the agent reads to decide WHEN to call it, and a parameter schema with
#   defaults and bounds so it knows WHAT to pass.
# =============================================================================
