"""Model base class.

Model types are produced by subclassing :class:`Model`, either with
:meth:`Model.extend` or with a class statement::

    User = Model.extend(
        {"greeting": lambda self: f"hello {self.email}"},
        {"schema": {"email": {"type": "string", "format": "email"}}},
        name="User",
    )

    class Admin(User):
        schema = {"email": {"type": "string"}, "level": {"type": "integer", "default": 1}}
        timestamps = False

        def greeting(self):
            return f"hello admin {self.email}"

Static configuration (``schema``, ``unique_id``, ``timestamps``, ``backend``,
any other class attribute) is resolved through the class hierarchy at access
time and is not visible on instances. Prototype entries live in a chained
mapping layered over the parent's prototype. Instances see their own field
values first, then the prototype chain, then :meth:`Model.validate` and
:meth:`Model.to_document`. Functions defined in a class statement body are
prototype entries.
"""

from __future__ import annotations

import inspect
import logging
from collections import ChainMap
from collections.abc import Callable, Mapping
from copy import deepcopy
from types import MethodType, new_class
from typing import TYPE_CHECKING, Any, ClassVar

from . import defaults as _defaults
from .backends import Backend, MemoryBackend, Query
from .errors import UndefinedSchemaError, ValidationError
from .hooks import Hook, HookPipeline
from .orchestrator import Callback, CrudOrchestrator, Outcome
from .schema import FieldSpec, Schema, build_schema, resolve_defaults
from .validation import ValidationResult, compile_schema, validate

if TYPE_CHECKING:
    from typing import Self

logger = logging.getLogger(__name__)

DISABLED = "disabled"

# Model methods instances can reach when no prototype entry shadows them.
_INSTANCE_API = frozenset({"to_document", "validate"})


class Prototype(ChainMap):
    """Instance-level attributes shared by every instance of a model type."""

    constructor: type[Model] | None = None


def memory_backend(model: type[Model]) -> Backend:
    """Default ``backend_factory``: a fresh in-memory store per model type."""

    return MemoryBackend(key_field=model.identity_field())


def _project(fields: Mapping[str, FieldSpec], values: Mapping[str, Any]) -> dict[str, Any]:
    document: dict[str, Any] = {}
    for name, spec in fields.items():
        if name not in values:
            continue
        value = values[name]
        if spec.properties is not None and isinstance(value, Mapping):
            document[name] = _project(spec.properties, value)
        else:
            document[name] = deepcopy(value)
    return document


def _instance_members(namespace: Mapping[str, Any]) -> dict[str, Any]:
    return {
        name: value
        for name, value in namespace.items()
        if not name.startswith("__") and (inspect.isfunction(value) or isinstance(value, property))
    }


class Model:
    """Root of every model type. It has no schema and cannot be instantiated."""

    schema: ClassVar[Schema | None] = None
    unique_id: ClassVar[str | None] = "_id"
    timestamps: ClassVar[bool] = True
    backend: ClassVar[Backend] = MemoryBackend()
    backend_factory: ClassVar[Callable[[type[Model]], Backend]] = staticmethod(memory_backend)
    hooks: ClassVar[HookPipeline] = HookPipeline()
    prototype: ClassVar[Prototype] = Prototype()
    superclass: ClassVar[Prototype | None] = None
    defaults: ClassVar[Any] = _defaults

    def __init_subclass__(cls, *, collect_methods: bool = True, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        parent = next(base for base in cls.__bases__ if issubclass(base, Model))
        own = cls.__dict__

        if "schema" in own:
            if own["schema"] is None:
                msg = f"{cls.__name__} declares an empty schema"
                raise UndefinedSchemaError(msg)
            cls.schema = build_schema(own["schema"])
        elif parent.schema is None:
            msg = f"{cls.__name__} must define a schema"
            raise UndefinedSchemaError(msg)
        compile_schema(cls.schema, cls.__name__)

        if own.get("unique_id") == DISABLED:
            cls.unique_id = None
        identity = cls.identity_field()
        if identity and identity not in cls.schema:
            msg = f"{cls.__name__}.unique_id {identity!r} is not a schema field"
            raise UndefinedSchemaError(msg)

        entries = _instance_members(own) if collect_methods else {}
        overrides = own.get("prototype")
        if isinstance(overrides, Prototype):
            overrides = overrides.maps[0]
        entries.update(overrides or {})
        cls.prototype = parent.prototype.new_child(entries)
        cls.prototype.constructor = cls
        cls.superclass = parent.prototype
        cls.hooks = parent.hooks.copy()
        if own.get("backend") is None:
            cls.backend = cls.backend_factory(cls)
        logger.debug("Defined model %s with fields %s", cls.__name__, list(cls.schema))

    @classmethod
    def identity_field(cls) -> str | None:
        """Name of the identity field, or ``None`` when identity is disabled."""

        if not cls.unique_id or cls.unique_id == DISABLED:
            return None
        return cls.unique_id

    @classmethod
    def extend(
        cls,
        proto: Mapping[str, Any] | None = None,
        static: Mapping[str, Any] | None = None,
        *,
        name: str | None = None,
    ) -> type[Self]:
        """Return a new model type derived from this one.

        ``proto`` entries become prototype attributes of the new type and
        ``static`` entries become class attributes, which instances do not
        see. ``static`` must carry a ``schema`` unless this type already has
        one to inherit. Identity is disabled with ``"unique_id": None`` (any
        falsy value) or ``"unique_id": "disabled"``.

        Raises:
            UndefinedSchemaError: No schema is supplied or inheritable, or
                ``unique_id`` names a field the schema does not declare.
            InvalidSchemaError: The schema names an unknown type.
        """

        namespace: dict[str, Any] = dict(static or {})
        if "schema" not in namespace and cls.schema is None:
            msg = f"{cls.__name__}.extend() requires a 'schema' static override"
            raise UndefinedSchemaError(msg)
        namespace["prototype"] = dict(proto or {})
        namespace.setdefault("__module__", cls.__module__)
        return new_class(
            name or f"{cls.__name__}Extension",
            (cls,),
            {"collect_methods": False},
            lambda body: body.update(namespace),
        )

    @classmethod
    def before(cls, event: str, callback: Hook | None = None) -> Any:
        """Run ``callback(instance)`` before ``event``; usable as a decorator."""

        if callback is None:
            return lambda func: cls.hooks.register("before", event, func)
        return cls.hooks.register("before", event, callback)

    @classmethod
    def after(cls, event: str, callback: Hook | None = None) -> Any:
        """Run ``callback(instance)`` once ``event`` has been persisted."""

        if callback is None:
            return lambda func: cls.hooks.register("after", event, func)
        return cls.hooks.register("after", event, callback)

    def __init__(self, data: Mapping[str, Any] | None = None) -> None:
        cls = type(self)
        if cls.schema is None:
            msg = f"{cls.__name__} has no schema; derive a type with Model.extend()"
            raise UndefinedSchemaError(msg)
        values = resolve_defaults(cls.schema, data or {})
        identity = cls.identity_field()
        if identity and identity in cls.schema and values.get(identity) is None:
            values[identity] = cls.defaults.uuid()
        self.__dict__.update(values)

    def __getattribute__(self, name: str) -> Any:
        if name.startswith("__"):
            return object.__getattribute__(self, name)
        values = object.__getattribute__(self, "__dict__")
        if name in values:
            return values[name]
        cls = type(self)
        if name in cls.prototype:
            value = cls.prototype[name]
            if inspect.isfunction(value):
                return MethodType(value, self)
            if isinstance(value, property):
                return value.__get__(self, cls)
            return value
        if name in _INSTANCE_API:
            return object.__getattribute__(self, name)
        if cls.schema is not None and name in cls.schema:
            return None
        msg = f"{cls.__name__!r} object has no attribute {name!r}"
        raise AttributeError(msg)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.to_document()!r})"

    def to_document(self) -> dict[str, Any]:
        """Return a copy of the schema fields this instance holds."""

        return _project(type(self).schema or {}, self.__dict__)

    def validate(self) -> ValidationResult | ValidationError:
        """Check the instance against its schema without running hooks."""

        cls = type(self)
        return validate(cls.schema, self.to_document(), model_name=cls.__name__)

    @classmethod
    async def create(
        cls,
        data: Mapping[str, Any] | None = None,
        callback: Callback | None = None,
    ) -> Outcome:
        return await CrudOrchestrator(cls).create(data, callback)

    @classmethod
    async def find(cls, query: Query, callback: Callback | None = None) -> Outcome:
        return await CrudOrchestrator(cls).find(query, callback)

    @classmethod
    async def find_all(
        cls,
        query: Query | None = None,
        callback: Callback | None = None,
    ) -> Outcome:
        return await CrudOrchestrator(cls).find_all(query, callback)

    @classmethod
    async def update(
        cls,
        query: Query,
        changes: Mapping[str, Any],
        callback: Callback | None = None,
    ) -> Outcome:
        return await CrudOrchestrator(cls).update(query, changes, callback)

    @classmethod
    async def destroy(cls, query: Query, callback: Callback | None = None) -> Outcome:
        return await CrudOrchestrator(cls).destroy(query, callback)


Model.prototype.constructor = Model


__all__ = ["DISABLED", "Model", "Prototype", "memory_backend"]
