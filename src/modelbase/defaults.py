"""Zero-argument generators for use as schema defaults.

Exposed on every model type as ``Model.defaults``::

    Token = Model.extend(
        None,
        {"schema": {"token": {"type": "string", "default": Model.defaults.random}}},
    )
"""

from __future__ import annotations

import secrets
from datetime import datetime
from uuid import uuid4

from modelbase.utils import utc_now

RANDOM_BYTES = 16


def random() -> str:
    """Return a fresh URL-safe random string."""

    return secrets.token_urlsafe(RANDOM_BYTES)


def uuid() -> str:
    """Return a fresh UUID4 as a hex string; used for generated identities."""

    return uuid4().hex


def now() -> datetime:
    return utc_now()


__all__ = ["RANDOM_BYTES", "now", "random", "uuid"]
