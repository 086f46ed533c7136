# =============================================================================
# core/params.py  —  Parameter Validation & Clamping
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   Turns the raw ``arguments`` dict that arrives with a tool call into a
#   clean dict of typed values, using the tool's ParamSpecs.
#
# CLAMP, DON'T REJECT:
#   Pagination-style numbers (count, limit, page) are pulled into their
#   declared [minimum, maximum] range.  An agent asking for 500 posts gets
#   50, not an error.  Everything else that is wrong (missing required
#   value, wrong type, over-long text) raises ParameterError, which the
#   handler turns into an explicit error text.
# =============================================================================

from __future__ import annotations

import math
from typing import Any, Iterable, Mapping

from core.models import ParamSpec


class ParameterError(ValueError):
    """Raised when tool arguments cannot be validated."""


def clamp(value: float, minimum: float | None = None, maximum: float | None = None) -> float:
    """Pull ``value`` into ``[minimum, maximum]``.  Either bound may be None.

    clamp(clamp(x)) == clamp(x) for every x.
    """
    if minimum is not None and value < minimum:
        value = minimum
    if maximum is not None and value > maximum:
        value = maximum
    return value


def _coerce_integer(spec: ParamSpec, value: Any) -> int:
    # bool is a subclass of int; True is not a page number
    if isinstance(value, bool):
        raise ParameterError(f"'{spec.name}' must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ParameterError(f"'{spec.name}' must be a finite number")
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise ParameterError(f"'{spec.name}' must be an integer")


def _coerce_number(spec: ParamSpec, value: Any) -> float:
    if isinstance(value, bool):
        raise ParameterError(f"'{spec.name}' must be a number")
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            raise ParameterError(f"'{spec.name}' must be a number") from None
    else:
        raise ParameterError(f"'{spec.name}' must be a number")
    if not math.isfinite(number):
        raise ParameterError(f"'{spec.name}' must be a finite number")
    return number


def _coerce_boolean(spec: ParamSpec, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    raise ParameterError(f"'{spec.name}' must be a boolean")


_ITEM_TYPES = {
    "string": str,
    "integer": int,
    "number": (int, float),
    "boolean": bool,
    "object": Mapping,
    "array": (list, tuple),
}


def _coerce_items(spec: ParamSpec, values: list[Any] | tuple[Any, ...]) -> list[Any]:
    """Check every element of an array against ``spec.items["type"]``.

    Whole numbers are accepted for string items (IDs sent as JSON numbers)
    and turned into strings.
    """
    item_type = (spec.items or {}).get("type")
    expected = _ITEM_TYPES.get(item_type)
    if expected is None:
        return list(values)

    coerced = []
    for index, item in enumerate(values):
        if item_type == "string" and isinstance(item, int) and not isinstance(item, bool):
            item = str(item)
        elif isinstance(item, bool) and item_type != "boolean":
            raise ParameterError(f"'{spec.name}[{index}]' must be of type {item_type}")
        elif not isinstance(item, expected):
            raise ParameterError(f"'{spec.name}[{index}]' must be of type {item_type}")
        coerced.append(item)
    return coerced


def _coerce_value(spec: ParamSpec, value: Any) -> Any:
    if spec.type == "integer":
        number = _coerce_integer(spec, value)
        return int(clamp(number, spec.minimum, spec.maximum))
    if spec.type == "number":
        return clamp(_coerce_number(spec, value), spec.minimum, spec.maximum)
    if spec.type == "boolean":
        return _coerce_boolean(spec, value)
    if spec.type == "string":
        if not isinstance(value, str):
            raise ParameterError(f"'{spec.name}' must be a string")
        if spec.max_length is not None and len(value) > spec.max_length:
            raise ParameterError(
                f"'{spec.name}' must be at most {spec.max_length} characters"
            )
        if spec.enum is not None and value not in spec.enum:
            raise ParameterError(f"'{spec.name}' must be one of {list(spec.enum)}")
        return value
    if spec.type == "array":
        if not isinstance(value, (list, tuple)):
            raise ParameterError(f"'{spec.name}' must be an array")
        return _coerce_items(spec, value)
    if spec.type == "object":
        if not isinstance(value, Mapping):
            raise ParameterError(f"'{spec.name}' must be an object")
        return dict(value)
    raise ParameterError(f"'{spec.name}' has unsupported type '{spec.type}'")


def validate_arguments(
    arguments: Mapping[str, Any] | None,
    params: Iterable[ParamSpec],
) -> dict[str, Any]:
    """Validate and normalize ``arguments`` against ``params``.

    Unknown arguments are dropped.  Missing optional arguments take their
    default; ``None`` counts as missing.
    """
    arguments = arguments or {}
    validated: dict[str, Any] = {}

    for spec in params:
        value = arguments.get(spec.name)
        if value is None:
            if spec.required:
                raise ParameterError(f"missing required parameter '{spec.name}'")
            if spec.default is None:
                validated[spec.name] = None
                continue
            value = spec.default
        validated[spec.name] = _coerce_value(spec, value)

    return validated


def to_json_schema(params: Iterable[ParamSpec]) -> dict[str, Any]:
    """Render ParamSpecs as the JSON schema object MCP clients expect."""
    properties: dict[str, Any] = {}
    required: list[str] = []

    for spec in params:
        prop: dict[str, Any] = {"type": spec.type}
        if spec.description:
            prop["description"] = spec.description
        if spec.default is not None:
            prop["default"] = spec.default
        if spec.minimum is not None:
            prop["minimum"] = spec.minimum
        if spec.maximum is not None:
            prop["maximum"] = spec.maximum
        if spec.max_length is not None:
            prop["maxLength"] = spec.max_length
        if spec.items is not None:
            prop["items"] = dict(spec.items)
        if spec.enum is not None:
            prop["enum"] = list(spec.enum)
        properties[spec.name] = prop
        if spec.required:
            required.append(spec.name)

    schema: dict[str, Any] = {"type": "object", "properties": properties}
    if required:
        schema["required"] = required
    return schema
