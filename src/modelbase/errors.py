"""Exceptions raised or reported by model types."""

from __future__ import annotations

from collections.abc import Mapping, Sequence


class ModelError(RuntimeError):
    """Base class for model definition and lifecycle failures."""

    @property
    def kind(self) -> str:
        return type(self).__name__


class UndefinedSchemaError(ModelError):
    """Raised when a model type is defined without a schema."""


class InvalidSchemaError(ModelError, TypeError):
    """Raised when a schema names a type the validator does not know."""


class ValidationError(ModelError):
    """Invalid attribute set.

    Reported through the error slot of CRUD operations rather than raised.
    ``errors`` maps dotted field paths to the messages produced for them.
    """

    valid = False

    def __init__(self, errors: Mapping[str, Sequence[str]], model_name: str | None = None) -> None:
        self.errors = {path: list(messages) for path, messages in errors.items()}
        self.model_name = model_name
        summary = "; ".join(
            f"{path}: {', '.join(messages)}" for path, messages in self.errors.items()
        )
        prefix = f"{model_name} failed validation" if model_name else "Validation failed"
        super().__init__(f"{prefix} ({summary})" if summary else prefix)


class HookError(ModelError):
    """Raised when a lifecycle hook fails with an unexpected exception."""

    def __init__(self, phase: str, event: str, callback: object) -> None:
        self.phase = phase
        self.event = event
        name = getattr(callback, "__qualname__", repr(callback))
        super().__init__(f"{phase} {event!r} hook {name} failed")


class UnknownHookEventError(ModelError, ValueError):
    """Raised when registering a hook for an event that does not exist."""


__all__ = [
    "HookError",
    "InvalidSchemaError",
    "ModelError",
    "UndefinedSchemaError",
    "UnknownHookEventError",
    "ValidationError",
]
