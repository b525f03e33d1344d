"""Attribute validation backed by pydantic.

Each schema is compiled once into a pydantic model. Type tags map to strict
types so ``"1"`` is not accepted for an integer field; ``format`` values map to
pydantic's own string formats. Validation never alters the values it checks.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from ipaddress import IPv4Address, IPv6Address
from typing import Annotated, Any, Literal, Optional, Union
from uuid import UUID

from pydantic import (
    AnyUrl,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    PydanticUserError,
    StrictBool,
    StrictFloat,
    StrictInt,
    StrictStr,
    create_model,
)
from pydantic import ValidationError as PydanticValidationError

from .errors import InvalidSchemaError, ValidationError
from .schema import FieldSpec, Schema

logger = logging.getLogger(__name__)

_TYPES: dict[str, Any] = {
    "string": StrictStr,
    "number": Union[StrictInt, StrictFloat],
    "integer": StrictInt,
    "boolean": StrictBool,
    "array": list,
    "object": dict,
    "any": Any,
    "null": None,
}

_FORMATS: dict[str, Any] = {
    "email": EmailStr,
    "uri": AnyUrl,
    "url": AnyUrl,
    "date-time": datetime,
    "date": date,
    "uuid": UUID,
    "ipv4": IPv4Address,
    "ipv6": IPv6Address,
}

_CONSTRAINTS = {
    "minimum": "ge",
    "maximum": "le",
    "exclusiveMinimum": "gt",
    "exclusiveMaximum": "lt",
    "minLength": "min_length",
    "maxLength": "max_length",
    "pattern": "pattern",
}

_CONFIG = ConfigDict(extra="ignore", arbitrary_types_allowed=True)


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """Outcome of a successful validation."""

    valid: bool = True
    errors: Mapping[str, list[str]] = field(default_factory=dict)


VALID = ValidationResult()


def _base_annotation(spec: FieldSpec, path: str) -> Any:
    if spec.properties is not None:
        return compile_fields(spec.properties, name=path)
    if spec.format is not None and spec.format in _FORMATS:
        return _FORMATS[spec.format]
    if spec.format is not None:
        logger.debug("Ignoring unknown format %r on %s", spec.format, path)

    tags = (spec.type,) if isinstance(spec.type, str) else spec.type
    annotations = []
    for tag in tags:
        if tag not in _TYPES:
            msg = f"Unknown type {tag!r} for field {path}"
            raise InvalidSchemaError(msg)
        annotation = _TYPES[tag]
        if tag == "array" and spec.items is not None:
            annotation = list[_annotation(spec.items, f"{path}[]")]
        annotations.append(annotation)
    if len(annotations) == 1:
        return annotations[0]
    return Union[tuple(annotations)]


def _annotation(spec: FieldSpec, path: str) -> Any:
    annotation = _base_annotation(spec, path)
    if "enum" in spec.constraints:
        annotation = Literal[tuple(spec.constraints["enum"])]
    arguments = {
        _CONSTRAINTS[key]: value
        for key, value in spec.constraints.items()
        if key in _CONSTRAINTS
    }
    if arguments:
        annotation = Annotated[annotation, Field(**arguments)]
    return annotation


def compile_fields(fields: Mapping[str, FieldSpec], *, name: str) -> type[BaseModel]:
    """Build a pydantic model for ``fields``.

    Field names are passed as aliases so names pydantic reserves (leading
    underscores, ``model_*``, ``schema``) stay usable.
    """

    definitions: dict[str, Any] = {}
    for index, (field_name, spec) in enumerate(fields.items()):
        annotation = _annotation(spec, f"{name}.{field_name}")
        if spec.required:
            definitions[f"field_{index}"] = (annotation, Field(alias=field_name))
        else:
            definitions[f"field_{index}"] = (
                Optional[annotation],
                Field(default=None, alias=field_name),
            )
    parts = name.replace("[]", "").split(".")
    model_name = "".join(part[:1].upper() + part[1:] for part in parts)
    return create_model(model_name, __config__=_CONFIG, **definitions)


def compile_schema(schema: Schema, name: str) -> type[BaseModel]:
    """Compile ``schema`` once and cache the result on it.

    Raises:
        InvalidSchemaError: A field names an unknown type tag or pydantic
            rejects the resulting field definitions.
    """

    if schema._validator is None:
        try:
            schema._validator = compile_fields(schema, name=name)
        except PydanticUserError as exc:
            msg = f"Cannot compile schema for {name}: {exc}"
            raise InvalidSchemaError(msg) from exc
    return schema._validator


def _collect(exc: PydanticValidationError) -> dict[str, list[str]]:
    errors: dict[str, list[str]] = {}
    for error in exc.errors():
        path = ".".join(str(part) for part in error["loc"]) or "__root__"
        errors.setdefault(path, []).append(error["msg"])
    return errors


def validate(
    schema: Schema,
    values: Mapping[str, Any],
    *,
    model_name: str = "Model",
) -> ValidationResult | ValidationError:
    """Check ``values`` against ``schema``.

    Returns :data:`VALID` or a :class:`~modelbase.errors.ValidationError`
    carrying per-field messages; never raises for invalid data.
    """

    model = compile_schema(schema, model_name)
    try:
        model.model_validate(dict(values))
    except PydanticValidationError as exc:
        error = ValidationError(_collect(exc), model_name=model_name)
        logger.debug("%s", error)
        return error
    return VALID


__all__ = ["VALID", "ValidationResult", "compile_fields", "compile_schema", "validate"]
