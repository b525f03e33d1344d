"""Schema-driven model types with lifecycle hooks and pluggable persistence."""

from . import defaults
from .backends import (
    Backend,
    BackendError,
    DuplicateKeyError,
    MemoryBackend,
    NotFoundError,
    create_backend,
)
from .config import ModelSettings
from .errors import (
    HookError,
    InvalidSchemaError,
    ModelError,
    UndefinedSchemaError,
    UnknownHookEventError,
    ValidationError,
)
from .hooks import EVENTS, HookPipeline
from .model import Model, Prototype
from .orchestrator import CrudOrchestrator, Outcome
from .schema import FieldSpec, GeneratedDefault, LiteralDefault, Schema, build_schema
from .validation import VALID, ValidationResult, validate

__version__ = "0.1.0"

__all__ = [
    "EVENTS",
    "VALID",
    "Backend",
    "BackendError",
    "CrudOrchestrator",
    "DuplicateKeyError",
    "FieldSpec",
    "GeneratedDefault",
    "HookError",
    "HookPipeline",
    "InvalidSchemaError",
    "LiteralDefault",
    "MemoryBackend",
    "Model",
    "ModelError",
    "ModelSettings",
    "NotFoundError",
    "Outcome",
    "Prototype",
    "Schema",
    "UndefinedSchemaError",
    "UnknownHookEventError",
    "ValidationError",
    "ValidationResult",
    "__version__",
    "build_schema",
    "create_backend",
    "defaults",
    "validate",
]
