"""Shared CLI dependency helpers."""

from __future__ import annotations

import logging
from functools import lru_cache
from importlib import import_module

from modelbase.config import ModelSettings
from modelbase.model import Model


@lru_cache(maxsize=1)
def get_settings() -> ModelSettings:
    """Return cached settings for CLI commands and configure logging once."""

    settings = ModelSettings.from_env()
    logging.basicConfig(level=settings.log_level)
    return settings


def reset_settings() -> None:
    """Clear the cached settings (useful for tests)."""

    get_settings.cache_clear()


def load_model(target: str) -> type[Model]:
    """Import ``package.module:TypeName`` and check it is a model type."""

    module_name, _, attribute = target.partition(":")
    if not module_name or not attribute:
        msg = f"Expected 'package.module:TypeName', got {target!r}"
        raise ValueError(msg)
    value = import_module(module_name)
    for part in attribute.split("."):
        value = getattr(value, part)
    if not isinstance(value, type) or not issubclass(value, Model):
        msg = f"{target} is not a model type"
        raise TypeError(msg)
    return value
