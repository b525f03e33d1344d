"""CRUD orchestration for model types."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any, NamedTuple

from .backends import BackendError, Query
from .errors import ModelError, ValidationError
from .utils import utc_now

if TYPE_CHECKING:
    from .model import Model


class Outcome(NamedTuple):
    """``(error, result)`` pair produced by every CRUD operation.

    Exactly one side is set on failure; ``error`` is ``None`` on success.
    """

    error: BaseException | None
    result: Any = None


Callback = Callable[[BaseException | None, Any], object]


class CrudOrchestrator:
    """Runs hooks and validation for a model type before touching its backend.

    Every operation returns an :class:`Outcome` and, when ``callback`` is
    given, calls it exactly once with the same ``(error, result)`` pair.
    Validation failures, hook failures and backend errors are reported, never
    raised.
    """

    def __init__(self, model: type[Model], *, logger: logging.Logger | None = None) -> None:
        self._model = model
        self._logger = logger or logging.getLogger(__name__)

    def _complete(
        self,
        operation: str,
        callback: Callback | None,
        error: BaseException | None,
        result: Any = None,
    ) -> Outcome:
        if error is not None:
            self._logger.info("%s.%s failed: %s", self._model.__name__, operation, error)
            result = None
        outcome = Outcome(error, result)
        if callback is not None:
            callback(*outcome)
        return outcome

    def _write_target(
        self,
        stored: Mapping[str, Any],
        updated: dict[str, Any],
        query: Query,
        changes: Mapping[str, Any],
    ) -> tuple[Query, dict[str, Any]]:
        field = self._model.identity_field()
        if field and stored.get(field) is not None:
            return {field: stored[field]}, updated
        # Without identity the query may match several documents; only the
        # keys this update touched are written to them.
        touched = {
            name: value
            for name, value in updated.items()
            if name in changes or name not in stored or stored[name] != value
        }
        return query, touched

    async def create(
        self,
        data: Mapping[str, Any] | None = None,
        callback: Callback | None = None,
    ) -> Outcome:
        model = self._model
        instance = model(data)
        try:
            model.hooks.run_all("before", ("validate", "create"), instance)
        except ModelError as exc:
            return self._complete("create", callback, exc)

        result = instance.validate()
        if isinstance(result, ValidationError):
            return self._complete("create", callback, result)

        if model.timestamps:
            now = utc_now()
            instance.created = now
            instance.modified = now

        try:
            await model.backend.store(instance.to_document())
        except BackendError as exc:
            return self._complete("create", callback, exc)
        self._logger.debug("Stored %r", instance)

        try:
            model.hooks.run("after", "create", instance)
        except ModelError as exc:
            return self._complete("create", callback, exc)
        return self._complete("create", callback, None, instance)

    async def find(self, query: Query, callback: Callback | None = None) -> Outcome:
        model = self._model
        try:
            document = await model.backend.fetch_one(query)
        except BackendError as exc:
            return self._complete("find", callback, exc)
        return self._complete("find", callback, None, model(document))

    async def find_all(
        self,
        query: Query | None = None,
        callback: Callback | None = None,
    ) -> Outcome:
        model = self._model
        try:
            documents = await model.backend.fetch_all(query)
        except BackendError as exc:
            return self._complete("find_all", callback, exc)
        return self._complete("find_all", callback, None, [model(doc) for doc in documents])

    async def update(
        self,
        query: Query,
        changes: Mapping[str, Any],
        callback: Callback | None = None,
    ) -> Outcome:
        model = self._model
        try:
            document = await model.backend.fetch_one(query)
        except BackendError as exc:
            return self._complete("update", callback, exc)

        instance = model({**document, **changes})
        try:
            model.hooks.run_all("before", ("validate", "update"), instance)
        except ModelError as exc:
            return self._complete("update", callback, exc)

        result = instance.validate()
        if isinstance(result, ValidationError):
            return self._complete("update", callback, result)

        if model.timestamps:
            instance.modified = utc_now()

        target, payload = self._write_target(document, instance.to_document(), query, changes)
        try:
            await model.backend.update(target, payload)
        except BackendError as exc:
            return self._complete("update", callback, exc)
        self._logger.debug("Updated %r matching %r", instance, target)

        try:
            model.hooks.run("after", "update", instance)
        except ModelError as exc:
            return self._complete("update", callback, exc)
        return self._complete("update", callback, None, instance)

    async def destroy(self, query: Query, callback: Callback | None = None) -> Outcome:
        model = self._model
        instance = None
        if model.hooks.has("before", "destroy") or model.hooks.has("after", "destroy"):
            try:
                instance = model(await model.backend.fetch_one(query))
                model.hooks.run("before", "destroy", instance)
            except (BackendError, ModelError) as exc:
                return self._complete("destroy", callback, exc)

        try:
            removed = await model.backend.delete(query)
        except BackendError as exc:
            return self._complete("destroy", callback, exc)
        self._logger.debug("Removed %d %s document(s) matching %r", removed, model.__name__, query)

        if instance is not None:
            try:
                model.hooks.run("after", "destroy", instance)
            except ModelError as exc:
                return self._complete("destroy", callback, exc)
        return self._complete("destroy", callback, None)


__all__ = ["Callback", "CrudOrchestrator", "Outcome"]
