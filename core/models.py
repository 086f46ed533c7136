# =============================================================================
# core/models.py  —  Data Models (the "nouns" of the tool server)
# =============================================================================
#
# These dataclasses define the *shape* of everything that flows between the
# capability classifier, the registry builder and the MCP layer.  Like the
# rest of core/, nothing here knows about FastMCP: a ToolDescriptor is a
# plain record that tools/mcp_server.py translates into a protocol tool.
#
# IMMUTABILITY:
#   Snapshots and descriptors are created once at startup and then only
#   read.  Concurrent tool calls share them without locks, so every model
#   here is frozen.
# =============================================================================

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Iterable, Mapping


# -----------------------------------------------------------------------------
# Tier — how much a tool is allowed to do
# -----------------------------------------------------------------------------
# The order matters: a catalog maps each tier to the capability flags it
# needs, and mutating tools always sit on the highest floor.
# -----------------------------------------------------------------------------
class Tier(enum.IntEnum):
    INTROSPECTION = 0   # feature discovery, never gated
    PUBLIC = 1          # read-only, public data
    PRIVILEGED = 2      # read-only, needs a full session (timelines, DMs)
    MUTATING = 3        # posts, likes, follows, messages


# -----------------------------------------------------------------------------
# ParamSpec — one entry of a tool's parameter schema
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class ParamSpec:
    """Declarative description of a single tool parameter.

    ``minimum``/``maximum`` on numeric parameters are *clamping* bounds:
    out-of-range values are pulled into range, never rejected.
    ``max_length`` on strings is a hard limit.
    """

    name: str
    type: str                          # "string", "integer", "number", "boolean", "array", "object"
    description: str = ""
    required: bool = False
    default: Any = None
    minimum: float | None = None
    maximum: float | None = None
    max_length: int | None = None
    items: Mapping[str, Any] | None = None   # JSON schema of array elements
    enum: tuple[str, ...] | None = None


# -----------------------------------------------------------------------------
# Content envelope — what every tool call and resource read returns
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class TextItem:
    text: str
    type: str = "text"


@dataclass(frozen=True)
class ContentEnvelope:
    """``{items: [{type: "text", text: ...}]}``, exactly one item per call."""

    items: tuple[TextItem, ...]

    @classmethod
    def text(cls, text: str) -> ContentEnvelope:
        return cls(items=(TextItem(text=text),))

    @property
    def first_text(self) -> str:
        return self.items[0].text if self.items else ""

    def to_dict(self) -> dict[str, Any]:
        return {"items": [{"type": item.type, "text": item.text} for item in self.items]}


# -----------------------------------------------------------------------------
# CapabilitySnapshot — which flags a source has, frozen at startup
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class CapabilitySnapshot:
    """Immutable mapping of capability name -> bool for one data source."""

    source: str
    flags: Mapping[str, bool] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Copy into a read-only view so callers holding the original dict
        # cannot change a snapshot after it was classified.
        object.__setattr__(self, "flags", MappingProxyType(dict(self.flags)))

    def __getitem__(self, name: str) -> bool:
        return self.flags[name]

    def __contains__(self, name: object) -> bool:
        return name in self.flags

    def get(self, name: str, default: bool = False) -> bool:
        return self.flags.get(name, default)

    def satisfies(self, precondition: Iterable[str]) -> bool:
        """True when every flag in ``precondition`` is present and true."""
        return all(self.flags.get(name, False) for name in precondition)

    def as_dict(self) -> dict[str, bool]:
        return dict(self.flags)


# -----------------------------------------------------------------------------
# ToolDescriptor — the unit of registration
# -----------------------------------------------------------------------------
Handler = Callable[[Mapping[str, Any]], Awaitable[ContentEnvelope]]


@dataclass(frozen=True)
class ToolDescriptor:
    """One invocable operation: name, description, schema and handler.

    ``precondition`` is the set of capability flags that must all be true
    for the descriptor to be registered.  It is fixed when the catalog is
    built and never re-evaluated.
    """

    name: str
    description: str
    params: tuple[ParamSpec, ...]
    handler: Handler = field(compare=False, repr=False)
    tier: Tier = Tier.PUBLIC
    precondition: frozenset[str] = frozenset()

    def parameter_schema(self) -> dict[str, Any]:
        from core.params import to_json_schema

        return to_json_schema(self.params)

    def listing(self) -> dict[str, Any]:
        """The discovery view: everything except the handler."""
        return {
            "name": self.name,
            "description": self.description,
            "parameterSchema": self.parameter_schema(),
        }
