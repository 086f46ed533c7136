# =============================================================================
# core/context.py  —  Application Context (built once at startup)
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   Wires each data source together, in this order:
#
#       configuration ─▶ classify() ─▶ CapabilitySnapshot
#                                           │
#       client factory ─▶ ClientProvider ─▶ SafeInvoker
#                                           │
#                            catalog(invoker) ─▶ build_registry() ─▶ ToolRegistry
#
#   The result, AppContext, is what the MCP server exposes.  It is built
#   exactly once per process; nothing in it changes afterwards, except the
#   shared client a SharedClientProvider may cache.
#
# WHY SOURCES ARE PASSED IN:
#   core/ doesn't know which sources exist; tools/ declares them as
#   SourceDefinitions.  Tests pass in fake providers to avoid the network.
# =============================================================================

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, Mapping

from core.capabilities import SourceCapabilities, classify
from core.config import ServerSettings, load_configuration, load_settings
from core.models import CapabilitySnapshot, ToolDescriptor
from core.registry import SourceCatalog, ToolRegistry, build_registry
from core.safe_call import (
    ClientFactory,
    ClientProvider,
    PerCallClientProvider,
    SafeInvoker,
    SharedClientProvider,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceDefinition:
    """Everything needed to stand up one data source.

    ``make_factory(configuration, settings)`` returns the async client
    factory; ``catalog(invoker)`` returns the source's SourceCatalog.
    """

    capabilities: SourceCapabilities
    minimum_capability: str
    make_factory: Callable[[Mapping[str, str], ServerSettings], ClientFactory]
    catalog: Callable[[SafeInvoker], SourceCatalog]

    @property
    def source(self) -> str:
        return self.capabilities.source


@dataclass
class SourceRuntime:
    source: str
    snapshot: CapabilitySnapshot
    provider: ClientProvider
    invoker: SafeInvoker
    descriptors: list[ToolDescriptor] = field(default_factory=list)


@dataclass
class AppContext:
    settings: ServerSettings
    registry: ToolRegistry
    sources: dict[str, SourceRuntime] = field(default_factory=dict)

    def snapshots(self) -> dict[str, CapabilitySnapshot]:
        return {name: runtime.snapshot for name, runtime in self.sources.items()}

    async def aclose(self) -> None:
        """Close every cached client (SharedClientProvider only)."""
        for runtime in self.sources.values():
            try:
                await runtime.provider.aclose()
            except Exception as exc:
                logger.warning("Closing %s client failed: %s", runtime.source, exc)


def make_provider(factory: ClientFactory, settings: ServerSettings) -> ClientProvider:
    if settings.reuse_sessions:
        return SharedClientProvider(factory)
    return PerCallClientProvider(factory)


def build_context(
    definitions: Iterable[SourceDefinition],
    settings: ServerSettings | None = None,
    env: Mapping[str, str] | None = None,
    providers: Mapping[str, ClientProvider] | None = None,
) -> AppContext:
    """Classify, wire and register every source.

    ``providers`` overrides the client provider of the named sources.
    """
    settings = settings or load_settings(env)
    providers = providers or {}
    context = AppContext(settings=settings, registry=ToolRegistry())

    for definition in definitions:
        configuration = load_configuration(definition.capabilities.config_keys, env)
        snapshot = classify(configuration, definition.capabilities)

        provider = providers.get(definition.source)
        if provider is None:
            provider = make_provider(definition.make_factory(configuration, settings), settings)

        invoker = SafeInvoker(
            definition.source,
            provider,
            snapshot,
            definition.minimum_capability,
            timeout=settings.request_timeout,
        )
        descriptors = build_registry(snapshot, definition.catalog(invoker))
        context.registry.register_source(snapshot, descriptors)
        context.sources[definition.source] = SourceRuntime(
            source=definition.source,
            snapshot=snapshot,
            provider=provider,
            invoker=invoker,
            descriptors=descriptors,
        )
        logger.info(
            "%s: %d tools registered, features %s",
            definition.source, len(descriptors), snapshot.as_dict(),
        )

    return context
