"""Typer CLI for inspecting and exercising model types."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Mapping
from typing import Any

import typer

from modelbase.errors import ValidationError
from modelbase.model import Model
from modelbase.schema import FieldSpec, describe_default

from .deps import get_settings, load_model

app = typer.Typer(help="modelbase command-line interface")


def _resolve(target: str) -> type[Model]:
    try:
        return load_model(target)
    except (ImportError, AttributeError, ValueError, TypeError) as exc:
        raise typer.BadParameter(str(exc), param_hint="TARGET") from exc


def _parse_json(raw: str, hint: str) -> dict[str, Any]:
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise typer.BadParameter(f"invalid JSON: {exc}", param_hint=hint) from exc
    if not isinstance(value, dict):
        raise typer.BadParameter("expected a JSON object", param_hint=hint)
    return value


def _field_lines(fields: Mapping[str, FieldSpec], indent: str = "") -> list[str]:
    lines = []
    for name, spec in fields.items():
        type_name = spec.type if isinstance(spec.type, str) else "|".join(spec.type)
        parts = [f"{indent}{name}", type_name]
        if spec.format:
            parts.append(f"format={spec.format}")
        if spec.required:
            parts.append("required")
        if spec.default is not None:
            parts.append(f"default={describe_default(spec)}")
        lines.append("\t".join(parts))
        if spec.properties is not None:
            lines.extend(_field_lines(spec.properties, indent + "  "))
    return lines


@app.command("show-settings")
def show_settings() -> None:
    """Print the resolved settings."""

    settings = get_settings()
    typer.echo("Environment:\t" + settings.environment)
    typer.echo("Backend URL:\t" + settings.backend_url)
    typer.echo("Log level:\t" + settings.log_level)


@app.command("describe")
def describe(target: str) -> None:
    """Show the schema and configuration of a model type (package.module:TypeName)."""

    get_settings()
    model = _resolve(target)
    typer.echo(f"Model:\t{model.__name__}")
    typer.echo(f"Identity:\t{model.identity_field() or 'disabled'}")
    typer.echo(f"Timestamps:\t{'on' if model.timestamps else 'off'}")
    typer.echo(f"Backend:\t{type(model.backend).__name__}")
    for line in _field_lines(model.schema or {}):
        typer.echo(line)


@app.command("validate")
def validate_data(target: str, data: str) -> None:
    """Validate a JSON object against a model type without storing it."""

    get_settings()
    model = _resolve(target)
    instance = model(_parse_json(data, "DATA"))
    result = instance.validate()
    if isinstance(result, ValidationError):
        typer.echo("invalid")
        for path, messages in result.errors.items():
            for message in messages:
                typer.echo(f"{path}:\t{message}")
        raise typer.Exit(code=1)
    typer.echo("valid")


@app.command("find")
def find(
    target: str,
    query: str = typer.Option("{}", help="JSON object of field values to match"),
) -> None:
    """List stored documents of a model type matching a query."""

    get_settings()
    model = _resolve(target)
    filters = _parse_json(query, "--query")

    async def _run() -> None:
        error, instances = await model.find_all(filters)
        if error is not None:
            typer.echo(f"Error: {error}")
            raise typer.Exit(code=1)
        if not instances:
            typer.echo("No documents found")
            return
        for instance in instances:
            typer.echo(json.dumps(instance.to_document(), default=str, sort_keys=True))

    asyncio.run(_run())
