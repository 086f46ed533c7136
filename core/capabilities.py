# =============================================================================
# core/capabilities.py  —  Capability Classifier
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   Looks at the configuration values we were given (credentials, API keys)
#   and decides, per data source, which capability flags are on.
#
#   Example (twitter):
#       TWITTER_USERNAME + TWITTER_PASSWORD           →  basicAuth
#       + TWITTER_EMAIL                               →  fullAuth, grokAccess
#
# KEY RULES:
#   1. A key counts only if it is present AND non-blank after strip().
#      "   " is exactly as good as not setting the variable at all.
#   2. Higher tiers are declared as the UNION of the lower tiers' keys and
#      re-evaluated from the configuration.  fullAuth is never computed as
#      "basicAuth and emailAuth", so each flag can be tested on its own and
#      monotonicity falls out of the declarations.
#   3. Classification never fails.  If the snapshot cannot be serialized we
#      log it and return an all-false snapshot.
# =============================================================================

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Iterable, Mapping

from core.models import CapabilitySnapshot

logger = logging.getLogger(__name__)


def union(*groups: Iterable[str]) -> tuple[str, ...]:
    """Merge requirement groups, keeping first-seen order."""
    merged: list[str] = []
    for group in groups:
        for key in group:
            if key not in merged:
                merged.append(key)
    return tuple(merged)


@dataclass(frozen=True)
class SourceCapabilities:
    """A source's capability vocabulary: flag name -> required config keys.

    An empty requirement tuple means the flag is always on (public APIs
    that need no credentials).
    """

    source: str
    requirements: Mapping[str, tuple[str, ...]] = field(default_factory=dict)

    @property
    def flag_names(self) -> tuple[str, ...]:
        return tuple(self.requirements)

    @property
    def config_keys(self) -> frozenset[str]:
        return frozenset(key for keys in self.requirements.values() for key in keys)


def is_present(value: object) -> bool:
    """A configuration value is usable only if it is a non-blank string."""
    return isinstance(value, str) and value.strip() != ""


def requirement_satisfied(configuration: Mapping[str, str | None], keys: Iterable[str]) -> bool:
    return all(is_present(configuration.get(key)) for key in keys)


def empty_snapshot(capabilities: SourceCapabilities) -> CapabilitySnapshot:
    """The all-false snapshot used when classification has to give up."""
    return CapabilitySnapshot(
        source=capabilities.source,
        flags={name: False for name in capabilities.flag_names},
    )


def classify(
    configuration: Mapping[str, str | None],
    capabilities: SourceCapabilities,
) -> CapabilitySnapshot:
    """Compute the capability snapshot of one source from configuration."""
    flags = {
        name: requirement_satisfied(configuration, keys)
        for name, keys in capabilities.requirements.items()
    }

    # The snapshot is published verbatim through the features resource, so
    # it must survive a JSON round trip.
    try:
        flags = json.loads(json.dumps(flags))
    except Exception:
        logger.exception(
            "Capability flags for %s could not be serialized; disabling all features",
            capabilities.source,
        )
        return empty_snapshot(capabilities)

    return CapabilitySnapshot(source=capabilities.source, flags=flags)
