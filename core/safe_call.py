# =============================================================================
# core/safe_call.py  —  Safe Invocation Wrapper
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   Every tool call that touches an upstream service goes through
#   SafeInvoker.invoke().  It guarantees one thing: an upstream problem
#   (missing credentials, failed login, network error, HTTP 429/500,
#   garbage JSON) NEVER crashes the MCP host.  Instead we log a warning and
#   hand back the fallback value the caller supplied.
#
# THE FLOW:
#     capability check ──no──▶ warn, return fallback
#            │
#     acquire client ──fails/None──▶ warn, return fallback
#            │
#     run operation (bounded by request_timeout) ──raises──▶ warn, fallback
#            │
#     return result unchanged
#
#   This is the ONLY place in the codebase that swallows exceptions.
#   Handlers compose around it; they don't add their own try/except.
#
# CANCELLATION:
#   asyncio.CancelledError is a BaseException, so ``except Exception`` lets
#   it through.  If the host cancels a call (client disconnected) we do not
#   produce a fallback (nobody is listening), but the ``finally`` still
#   releases the client.
#
# CLIENT PROVIDERS:
#   PerCallClientProvider   → build a fresh client per call, close it after.
#                             Simple and safe; costs a login per call for
#                             twitter.
#   SharedClientProvider    → build one client lazily and reuse it.  At most
#                             one construction runs at a time; concurrent
#                             callers wait for it.  Opt-in via
#                             REUSE_CLIENT_SESSIONS=true.
# =============================================================================

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Mapping, Protocol, TypeVar

from core.models import CapabilitySnapshot

logger = logging.getLogger(__name__)

T = TypeVar("T")
ClientFactory = Callable[[], Awaitable[Any]]

DEFAULT_TIMEOUT_SECONDS = 30.0


class ClientProvider(Protocol):
    async def acquire(self) -> Any: ...

    async def release(self, client: Any) -> None: ...

    async def aclose(self) -> None: ...


async def _close_client(client: Any) -> None:
    close = getattr(client, "aclose", None)
    if close is not None:
        await close()


class PerCallClientProvider:
    """Constructs a new client for every invocation."""

    def __init__(self, factory: ClientFactory) -> None:
        self._factory = factory

    async def acquire(self) -> Any:
        return await self._factory()

    async def release(self, client: Any) -> None:
        await _close_client(client)

    async def aclose(self) -> None:
        return None


class SharedClientProvider:
    """Lazily constructs one client and hands it to every invocation.

    A failed construction (exception or ``None``) is not cached, so the
    next call tries again.
    """

    def __init__(self, factory: ClientFactory) -> None:
        self._factory = factory
        self._client: Any = None
        self._lock = asyncio.Lock()

    async def acquire(self) -> Any:
        if self._client is not None:
            return self._client
        async with self._lock:
            if self._client is None:
                self._client = await self._factory()
            return self._client

    async def release(self, client: Any) -> None:
        return None

    async def aclose(self) -> None:
        async with self._lock:
            client, self._client = self._client, None
        if client is not None:
            await _close_client(client)


def upstream_status_code(exc: BaseException) -> int | None:
    """Best-effort HTTP status code of an upstream failure."""
    response = getattr(exc, "response", None)
    status = getattr(response, "status_code", None)
    if status is None:
        status = getattr(exc, "status_code", None)
    return status if isinstance(status, int) else None


def _describe(context: Mapping[str, Any] | None) -> str:
    if not context:
        return ""
    return ", ".join(f"{key}={value!r}" for key, value in context.items())


class SafeInvoker:
    """Runs upstream operations for one source under the fallback contract."""

    def __init__(
        self,
        source: str,
        provider: ClientProvider,
        snapshot: CapabilitySnapshot,
        required_capability: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self.source = source
        self.provider = provider
        self.snapshot = snapshot
        self.required_capability = required_capability
        self.timeout = timeout

    async def invoke(
        self,
        operation_name: str,
        operation: Callable[[Any], Awaitable[T]],
        fallback: T,
        context: Mapping[str, Any] | None = None,
    ) -> T:
        args = _describe(context)

        # --- Step 1: capability gate and client acquisition ---
        if not self.snapshot.get(self.required_capability):
            logger.warning(
                "[%s] %s(%s) skipped: capability '%s' is not available",
                self.source, operation_name, args, self.required_capability,
            )
            return fallback

        try:
            client = await asyncio.wait_for(self.provider.acquire(), self.timeout)
        except Exception as exc:
            logger.warning(
                "[%s] %s(%s) skipped: client unavailable: %s",
                self.source, operation_name, args, str(exc) or type(exc).__name__,
            )
            return fallback

        if client is None:
            logger.warning(
                "[%s] %s(%s) skipped: client unavailable: construction returned nothing",
                self.source, operation_name, args,
            )
            return fallback

        # --- Steps 2 & 3: run the operation, absorb any failure ---
        try:
            return await asyncio.wait_for(operation(client), self.timeout)
        except Exception as exc:
            status = upstream_status_code(exc)
            logger.warning(
                "[%s] %s(%s) failed%s: %s: %s",
                self.source,
                operation_name,
                args,
                f" with HTTP {status}" if status is not None else "",
                type(exc).__name__,
                exc,
            )
            return fallback
        finally:
            try:
                await self.provider.release(client)
            except Exception as exc:
                logger.warning(
                    "[%s] releasing client after %s failed: %s",
                    self.source, operation_name, exc,
                )
