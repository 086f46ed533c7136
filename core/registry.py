# =============================================================================
# core/registry.py  —  Tool Registry Builder
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   Decides which tools exist.  Each source ships a static SourceCatalog
#   (see tools/*_tools.py).  At startup build_registry() walks that catalog
#   against the source's CapabilitySnapshot and keeps only the descriptors
#   whose precondition holds.  A tool that isn't allowed simply isn't
#   registered: the agent never sees it in list_tools().
#
# HOW A HANDLER IS COMPOSED (define_tool):
#
#     RECEIVED ─▶ validate_arguments ─▶ SafeInvoker.invoke ─▶ shape_result ─▶ RETURNED
#                    │ (ParameterError)        │ (any upstream failure)
#                    ▼                         ▼
#               "Invalid parameters"        fallback value ─▶ placeholder text
#
#   Nothing leaves a handler as an exception.
#
# TIERS:
#   A catalog maps every Tier to a "floor" of capability flags.  A
#   descriptor's precondition is floor(tier) plus any extra flags it asks
#   for, so a MUTATING tool can never end up behind a read-only gate.
# =============================================================================

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable, Mapping

from core.content import is_empty, shape_result
from core.models import (
    CapabilitySnapshot,
    ContentEnvelope,
    ParamSpec,
    Tier,
    ToolDescriptor,
)
from core.params import ParameterError, validate_arguments
from core.safe_call import SafeInvoker

logger = logging.getLogger(__name__)


class ToolNotFoundError(LookupError):
    """Raised when a tool name is not in the registry."""


class ResourceNotFoundError(LookupError):
    """Raised when a resource URI is not served by the registry."""


Operation = Callable[[Any, Mapping[str, Any]], Awaitable[Any]]


# =============================================================================
# Descriptor composition
# =============================================================================
def define_tool(
    invoker: SafeInvoker,
    *,
    name: str,
    description: str,
    params: Iterable[ParamSpec] = (),
    call: Operation,
    fallback: Any,
    placeholder: str,
    tier: Tier = Tier.PUBLIC,
    requires: Iterable[str] = (),
    shape: Callable[[Any], Any] | None = None,
    empty: Callable[[Any], bool] = is_empty,
) -> ToolDescriptor:
    """Build a descriptor whose handler runs validate → invoke → shape.

    ``call(client, args)`` is the upstream operation.  It runs inside the
    safe invoker, so anything it raises becomes ``fallback``.  ``shape``
    runs afterwards on values of the success/fallback shape and must be a
    pure transformation (e.g. bool → status message).
    """
    params = tuple(params)

    async def handler(arguments: Mapping[str, Any]) -> ContentEnvelope:
        try:
            args = validate_arguments(arguments, params)
        except ParameterError as exc:
            return ContentEnvelope.text(f"Invalid parameters for {name}: {exc}")

        raw = await invoker.invoke(
            name,
            lambda client: call(client, args),
            fallback,
            context=args,
        )
        value = shape(raw) if shape is not None else raw
        return shape_result(value, placeholder, empty)

    return ToolDescriptor(
        name=name,
        description=description,
        params=params,
        handler=handler,
        tier=tier,
        precondition=frozenset(requires),
    )


# =============================================================================
# Catalogs
# =============================================================================
@dataclass(frozen=True)
class SourceCatalog:
    """A source's fixed, ordered list of candidate tools plus tier floors."""

    source: str
    floors: Mapping[Tier, frozenset[str]]
    descriptors: tuple[ToolDescriptor, ...] = field(default_factory=tuple)
    notes: str = ""

    def precondition_of(self, descriptor: ToolDescriptor) -> frozenset[str]:
        if descriptor.tier is Tier.INTROSPECTION:
            return frozenset()
        if descriptor.tier not in self.floors:
            raise ValueError(
                f"{self.source}: no capability floor declared for tier "
                f"{descriptor.tier.name} (tool '{descriptor.name}')"
            )
        return self.floors[descriptor.tier] | descriptor.precondition

    def validate(self) -> None:
        """Reject duplicate names and tiers without a floor."""
        seen: set[str] = set()
        for descriptor in self.descriptors:
            if descriptor.name in seen:
                raise ValueError(f"{self.source}: duplicate tool name '{descriptor.name}'")
            seen.add(descriptor.name)
            self.precondition_of(descriptor)


# =============================================================================
# Feature introspection
# =============================================================================
def features_uri(source: str) -> str:
    return f"{source}://features"


def features_text(snapshot: CapabilitySnapshot) -> str:
    try:
        return json.dumps(snapshot.as_dict(), indent=2)
    except (TypeError, ValueError) as exc:
        logger.error("Feature snapshot for %s could not be serialized: %s", snapshot.source, exc)
        return f"Error: features could not be serialized ({exc})"


def features_descriptor(snapshot: CapabilitySnapshot, notes: str = "") -> ToolDescriptor:
    """The always-present ``<source>-get-features`` tool.

    ``notes`` is appended to the description (e.g. features the source
    cannot offer).
    """
    description = (
        f"Gets the {snapshot.source} capability flags currently enabled on this "
        "server. Call this to see which tools are available before using them."
    )
    if notes:
        description = f"{description} {notes}"

    async def handler(arguments: Mapping[str, Any]) -> ContentEnvelope:
        return ContentEnvelope.text(features_text(snapshot))

    return ToolDescriptor(
        name=f"{snapshot.source}-get-features",
        description=description,
        params=(),
        handler=handler,
        tier=Tier.INTROSPECTION,
        precondition=frozenset(),
    )


# =============================================================================
# Registry builder
# =============================================================================
def build_registry(
    snapshot: CapabilitySnapshot,
    catalog: SourceCatalog,
) -> list[ToolDescriptor]:
    """Return the descriptors registered for ``snapshot``, in catalog order.

    The introspection descriptor always comes first.  Every other
    descriptor is emitted with its full (floor + extra) precondition, and
    only if the snapshot satisfies it.
    """
    catalog.validate()
    registered = [features_descriptor(snapshot, catalog.notes)]

    for descriptor in catalog.descriptors:
        precondition = catalog.precondition_of(descriptor)
        if not snapshot.satisfies(precondition):
            logger.debug(
                "%s: not registering %s (needs %s)",
                catalog.source, descriptor.name, sorted(precondition),
            )
            continue
        registered.append(
            ToolDescriptor(
                name=descriptor.name,
                description=descriptor.description,
                params=descriptor.params,
                handler=descriptor.handler,
                tier=descriptor.tier,
                precondition=precondition,
            )
        )

    return registered


class ToolRegistry:
    """Every registered descriptor and features snapshot, across sources."""

    def __init__(self) -> None:
        self._by_name: dict[str, ToolDescriptor] = {}
        self._snapshots: dict[str, CapabilitySnapshot] = {}

    def register(self, descriptor: ToolDescriptor) -> None:
        if descriptor.name in self._by_name:
            raise ValueError(f"Tool '{descriptor.name}' already registered")
        self._by_name[descriptor.name] = descriptor

    def register_source(
        self,
        snapshot: CapabilitySnapshot,
        descriptors: Iterable[ToolDescriptor],
    ) -> None:
        uri = features_uri(snapshot.source)
        if uri in self._snapshots:
            raise ValueError(f"Resource '{uri}' already registered")
        self._snapshots[uri] = snapshot
        for descriptor in descriptors:
            self.register(descriptor)

    def get_by_name(self, name: str) -> ToolDescriptor | None:
        return self._by_name.get(name)

    def get_all(self) -> list[ToolDescriptor]:
        return list(self._by_name.values())

    def list_tools(self) -> list[dict[str, Any]]:
        return [descriptor.listing() for descriptor in self._by_name.values()]

    def resource_uris(self) -> list[str]:
        return list(self._snapshots)

    async def invoke_tool(
        self,
        name: str,
        arguments: Mapping[str, Any] | None = None,
    ) -> ContentEnvelope:
        descriptor = self._by_name.get(name)
        if descriptor is None:
            raise ToolNotFoundError(f"Unknown tool: {name}")
        return await descriptor.handler(arguments or {})

    def read_resource(self, uri: str) -> ContentEnvelope:
        snapshot = self._snapshots.get(uri)
        if snapshot is None:
            raise ResourceNotFoundError(f"Unknown resource: {uri}")
        return ContentEnvelope.text(features_text(snapshot))

    def __len__(self) -> int:
        return len(self._by_name)

    def __contains__(self, name: str) -> bool:
        return name in self._by_name
