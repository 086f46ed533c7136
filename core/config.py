# =============================================================================
# core/config.py  —  Configuration & Server Settings
# =============================================================================
#
# WHERE VALUES COME FROM:
#   Plain environment variables.  main.py calls load_dotenv() first, so a
#   local .env file works too.
#
# TWO KINDS OF CONFIGURATION:
#   1. Credentials (TWITTER_USERNAME, COINGECKO_API_KEY, ...).  These are
#      only ever *classified* (core/capabilities.py).  A missing credential
#      lowers a capability tier; it never stops the server from starting.
#   2. Server settings (timeouts, transport, log level).  A bad value
#      ("REQUEST_TIMEOUT_SECONDS=soon") is logged and replaced by the
#      default for the same reason.
# =============================================================================

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping

logger = logging.getLogger(__name__)

# Keys read by the clients but not part of any capability requirement
OPTIONAL_KEYS = ("TWITTER_COOKIES_FILE",)

TRANSPORTS = ("stdio", "sse", "http")


@dataclass(frozen=True)
class ServerSettings:
    request_timeout: float = 30.0
    reuse_sessions: bool = False
    log_level: str = "INFO"
    transport: str = "stdio"
    host: str = "127.0.0.1"
    port: int = 3000


def _read_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r: not a number, using %s", name, raw, default)
        return default
    if value <= 0:
        logger.warning("Ignoring %s=%r: must be positive, using %s", name, raw, default)
        return default
    return value


def _read_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r: not an integer, using %s", name, raw, default)
        return default


def load_settings(env: Mapping[str, str] | None = None) -> ServerSettings:
    """Read server settings from ``env`` (defaults to ``os.environ``)."""
    env = os.environ if env is None else env

    transport = env.get("MCP_TRANSPORT", "stdio").strip().lower() or "stdio"
    if transport not in TRANSPORTS:
        logger.warning("Ignoring MCP_TRANSPORT=%r, using stdio", transport)
        transport = "stdio"

    return ServerSettings(
        request_timeout=_read_float(env, "REQUEST_TIMEOUT_SECONDS", 30.0),
        reuse_sessions=env.get("REUSE_CLIENT_SESSIONS", "false").strip().lower() == "true",
        log_level=env.get("LOG_LEVEL", "INFO").strip().upper() or "INFO",
        transport=transport,
        host=env.get("MCP_HOST", "127.0.0.1").strip() or "127.0.0.1",
        port=_read_int(env, "MCP_PORT", 3000),
    )


def load_configuration(
    keys: frozenset[str] | set[str],
    env: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Collect the named configuration values that are set in ``env``.

    Values are passed through untouched; blank values are kept so the
    classifier can treat them as absent.
    """
    env = os.environ if env is None else env
    wanted = set(keys) | set(OPTIONAL_KEYS)
    return {key: env[key] for key in sorted(wanted) if key in env}
