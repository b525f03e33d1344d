"""Schema definitions and default resolution.

A schema maps field names to field specifications. Raw specifications are
plain mappings in the JSON-schema style::

    {
        "email": {"type": "string", "format": "email", "required": True},
        "tags": {"type": "array", "default": list},
        "address": {
            "properties": {
                "city": {"type": "string"},
                "country": {"type": "string", "default": "NL"},
            }
        },
    }

``default`` is either a literal (deep-copied for each instance) or a
zero-argument callable invoked for each instance. ``properties`` turns a field
into a composite whose sub-fields are resolved the same way.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any

IMPLICIT_FIELDS = ("_id", "created", "modified")

CONSTRAINT_KEYS = (
    "enum",
    "minimum",
    "maximum",
    "exclusiveMinimum",
    "exclusiveMaximum",
    "minLength",
    "maxLength",
    "pattern",
)


@dataclass(frozen=True, slots=True)
class LiteralDefault:
    value: Any

    def resolve(self) -> Any:
        return deepcopy(self.value)


@dataclass(frozen=True, slots=True)
class GeneratedDefault:
    factory: Callable[[], Any]

    def resolve(self) -> Any:
        return self.factory()


Default = LiteralDefault | GeneratedDefault


def as_default(value: Any) -> Default:
    if isinstance(value, LiteralDefault | GeneratedDefault):
        return value
    if callable(value):
        return GeneratedDefault(value)
    return LiteralDefault(value)


@dataclass(frozen=True, slots=True)
class FieldSpec:
    """One node of the schema tree."""

    type: str | tuple[str, ...] = "any"
    default: Default | None = None
    format: str | None = None
    properties: Mapping[str, FieldSpec] | None = None
    items: FieldSpec | None = None
    required: bool = False
    description: str | None = None
    constraints: Mapping[str, Any] = field(default_factory=dict)
    extra: Mapping[str, Any] = field(default_factory=dict)

    @property
    def is_composite(self) -> bool:
        return self.properties is not None


class Schema(Mapping[str, FieldSpec]):
    """Immutable mapping of field names to :class:`FieldSpec`."""

    __slots__ = ("_fields", "_validator")

    def __init__(self, fields: Mapping[str, FieldSpec]) -> None:
        self._fields = dict(fields)
        self._validator: Any = None

    def __getitem__(self, name: str) -> FieldSpec:
        return self._fields[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        return f"Schema({list(self._fields)!r})"


def parse_field(name: str, raw: Any) -> FieldSpec:
    if isinstance(raw, FieldSpec):
        return raw
    if not isinstance(raw, Mapping):
        msg = f"Field {name!r} must be described by a mapping, got {type(raw).__name__}"
        raise TypeError(msg)

    properties = None
    if raw.get("properties") is not None:
        properties = parse_fields(raw["properties"])
    items = parse_field(f"{name}[]", raw["items"]) if raw.get("items") is not None else None

    raw_type = raw.get("type")
    if raw_type is None:
        raw_type = "object" if properties is not None else "any"
    elif not isinstance(raw_type, str):
        raw_type = tuple(raw_type)

    known = {"type", "default", "format", "properties", "items", "required", "description"}
    return FieldSpec(
        type=raw_type,
        default=as_default(raw["default"]) if "default" in raw else None,
        format=raw.get("format"),
        properties=properties,
        items=items,
        required=bool(raw.get("required", False)),
        description=raw.get("description"),
        constraints={key: raw[key] for key in CONSTRAINT_KEYS if key in raw},
        extra={
            key: value
            for key, value in raw.items()
            if key not in known and key not in CONSTRAINT_KEYS
        },
    )


def parse_fields(raw: Mapping[str, Any]) -> dict[str, FieldSpec]:
    if not isinstance(raw, Mapping):
        msg = f"Schema must be a mapping, got {type(raw).__name__}"
        raise TypeError(msg)
    return {name: parse_field(name, spec) for name, spec in raw.items()}


def build_schema(raw: Mapping[str, Any]) -> Schema:
    """Parse ``raw`` and layer it over the implicit identity/timestamp fields."""

    if isinstance(raw, Schema):
        return raw
    fields: dict[str, FieldSpec] = {name: FieldSpec(type="any") for name in IMPLICIT_FIELDS}
    fields.update(parse_fields(raw))
    return Schema(fields)


def resolve_defaults(fields: Mapping[str, FieldSpec], data: Mapping[str, Any]) -> dict[str, Any]:
    """Materialize the declared fields of ``data``, filling in defaults.

    Keys of ``data`` that are not declared are dropped. Fields with neither a
    value nor a default are left out.
    """

    resolved: dict[str, Any] = {}
    for name, spec in fields.items():
        if name in data:
            value = data[name]
            if spec.properties is not None and isinstance(value, Mapping):
                resolved[name] = resolve_defaults(spec.properties, value)
            else:
                resolved[name] = deepcopy(value)
        elif spec.default is not None:
            value = spec.default.resolve()
            if spec.properties is not None and isinstance(value, Mapping):
                value = resolve_defaults(spec.properties, value)
            resolved[name] = value
        elif spec.properties is not None:
            nested = resolve_defaults(spec.properties, {})
            if nested:
                resolved[name] = nested
    return resolved


def describe_default(spec: FieldSpec) -> str:
    if spec.default is None:
        return ""
    if isinstance(spec.default, GeneratedDefault):
        factory = spec.default.factory
        return f"{getattr(factory, '__name__', repr(factory))}()"
    return repr(spec.default.value)


__all__ = [
    "CONSTRAINT_KEYS",
    "IMPLICIT_FIELDS",
    "Default",
    "FieldSpec",
    "GeneratedDefault",
    "LiteralDefault",
    "Schema",
    "as_default",
    "build_schema",
    "describe_default",
    "parse_field",
    "parse_fields",
    "resolve_defaults",
]
