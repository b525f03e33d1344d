"""Lightweight configuration loader."""

from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from modelbase.backends import MEMORY_URL, Backend, create_backend

if TYPE_CHECKING:
    from modelbase.model import Model


@dataclass(frozen=True)
class ModelSettings:
    """Immutable configuration sourced from environment variables."""

    environment: str = "development"
    backend_url: str = MEMORY_URL
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls) -> ModelSettings:
        return cls(
            environment=os.getenv("MODELBASE_ENV", cls.environment),
            backend_url=os.getenv("MODELBASE_BACKEND_URL", cls.backend_url),
            log_level=os.getenv("MODELBASE_LOG_LEVEL", cls.log_level).upper(),
        )

    def backend_factory(self) -> Callable[[type[Model]], Backend]:
        """Return a ``backend_factory`` building backends from ``backend_url``.

        Each model type gets its own backend; SQLite backends use the type
        name as the collection.
        """

        url = self.backend_url

        def factory(model: type[Model]) -> Backend:
            return create_backend(url, collection=model.__name__, key_field=model.identity_field())

        return factory


__all__ = ["ModelSettings"]
