"""Lifecycle hook pipeline."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from .errors import HookError, UnknownHookEventError, ValidationError

logger = logging.getLogger(__name__)

EVENTS = ("validate", "create", "update", "destroy")
PHASES = ("before", "after")

Hook = Callable[[Any], object]


@dataclass(slots=True)
class HookPipeline:
    """Ordered callbacks per ``(phase, event)``.

    A model type owns one pipeline. Subtypes receive a copy when they are
    defined, so later registrations on either side stay local.
    """

    _hooks: dict[tuple[str, str], list[Hook]] = field(default_factory=dict)

    def register(self, phase: str, event: str, callback: Hook) -> Hook:
        if phase not in PHASES:
            msg = f"Unknown hook phase {phase!r}; expected one of {PHASES}"
            raise UnknownHookEventError(msg)
        if event not in EVENTS:
            msg = f"Unknown hook event {event!r}; expected one of {EVENTS}"
            raise UnknownHookEventError(msg)
        if not callable(callback):
            msg = f"Hook for {phase} {event!r} must be callable"
            raise TypeError(msg)
        self._hooks.setdefault((phase, event), []).append(callback)
        return callback

    def callbacks(self, phase: str, event: str) -> tuple[Hook, ...]:
        return tuple(self._hooks.get((phase, event), ()))

    def has(self, phase: str, event: str) -> bool:
        return bool(self._hooks.get((phase, event)))

    def run(self, phase: str, event: str, instance: Any) -> None:
        """Invoke the callbacks for ``(phase, event)`` on ``instance`` in order.

        A callback may raise :class:`ValidationError` to reject the instance;
        anything else it raises is wrapped in :class:`HookError`.
        """

        for callback in self.callbacks(phase, event):
            try:
                callback(instance)
            except ValidationError:
                raise
            except Exception as exc:
                logger.warning("%s %r hook %r raised %s", phase, event, callback, exc)
                raise HookError(phase, event, callback) from exc

    def run_all(self, phase: str, events: Iterable[str], instance: Any) -> None:
        for event in events:
            self.run(phase, event, instance)

    def copy(self) -> HookPipeline:
        return HookPipeline({key: list(callbacks) for key, callbacks in self._hooks.items()})


__all__ = ["EVENTS", "PHASES", "Hook", "HookPipeline"]
