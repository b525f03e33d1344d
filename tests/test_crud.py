from __future__ import annotations

import asyncio
from collections.abc import Iterator
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from modelbase import (
    BackendError,
    HookError,
    MemoryBackend,
    Model,
    NotFoundError,
    Outcome,
    ValidationError,
)
from modelbase import orchestrator as orchestrator_module


class Recorder:
    def __init__(self) -> None:
        self.calls: list[tuple[BaseException | None, Any]] = []

    def __call__(self, error: BaseException | None, result: Any) -> None:
        self.calls.append((error, result))


def _type(**static: Any) -> type[Model]:
    return Model.extend(
        None,
        {"schema": {"email": {"type": "string", "format": "email"}, "random": {"type": "string"}}}
        | static,
        name="Contact",
    )


@pytest.fixture()
def clock(monkeypatch: pytest.MonkeyPatch) -> Iterator[list[datetime]]:
    ticks: list[datetime] = []
    start = datetime(2024, 1, 1, tzinfo=UTC)

    def fake_now() -> datetime:
        ticks.append(start + timedelta(seconds=len(ticks)))
        return ticks[-1]

    monkeypatch.setattr(orchestrator_module, "utc_now", fake_now)
    yield ticks


def _backend(model: type[Model]) -> MemoryBackend:
    assert isinstance(model.backend, MemoryBackend)
    return model.backend


def test_create_with_valid_data(clock: list[datetime]) -> None:
    Type = _type()
    recorder = Recorder()

    error, instance = asyncio.run(Type.create({"email": "valid@email.com"}, recorder))

    assert error is None
    assert isinstance(instance, Type)
    assert instance.created == clock[0]
    assert instance.modified == clock[0]
    assert recorder.calls == [(None, instance)]
    documents = _backend(Type).documents
    assert len(documents) == 1
    assert documents[0]["created"] == instance.created
    assert documents[0]["_id"] == instance._id


def test_create_without_callback_returns_an_outcome() -> None:
    Type = _type()

    outcome = asyncio.run(Type.create({"email": "valid@email.com"}))

    assert isinstance(outcome, Outcome)
    assert outcome.error is None
    assert outcome.result.email == "valid@email.com"


def test_create_with_invalid_data() -> None:
    Type = _type()
    recorder = Recorder()

    error, instance = asyncio.run(Type.create({"email": "not-valid"}, recorder))

    assert isinstance(error, ValidationError)
    assert error.kind == "ValidationError"
    assert "email" in error.errors
    assert instance is None
    assert recorder.calls == [(error, None)]
    assert _backend(Type).documents == ()


def test_create_without_timestamps() -> None:
    Type = _type(timestamps=False)

    error, instance = asyncio.run(Type.create({"email": "valid@email.com"}))

    assert error is None
    assert instance.created is None
    assert "created" not in _backend(Type).documents[0]


def test_before_validate_hook_runs_on_create() -> None:
    Type = _type()
    Type.before("validate", lambda instance: setattr(instance, "random", "zxcv"))

    error, instance = asyncio.run(Type.create({"email": "valid@email.com"}))

    assert error is None
    assert instance.random == "zxcv"


def test_before_create_hook_is_persisted() -> None:
    Type = _type()
    Type.before("create", lambda instance: setattr(instance, "random", "zxcv"))

    error, instance = asyncio.run(Type.create({"email": "valid@email.com"}))

    assert error is None
    assert instance.random == "zxcv"
    assert _backend(Type).documents[0]["random"] == "zxcv"


def test_hooks_run_before_validation() -> None:
    Type = _type()
    order: list[str] = []
    Type.before("create", lambda instance: order.append("create"))
    Type.before("validate", lambda instance: order.append("validate"))

    def repair(instance: Model) -> None:
        instance.email = "repaired@email.com"

    Type.before("validate", repair)

    error, instance = asyncio.run(Type.create({"email": "not-valid"}))

    assert error is None
    assert instance.email == "repaired@email.com"
    assert order == ["validate", "create"]


def test_hook_can_reject_with_validation_error() -> None:
    Type = _type()

    def reject(instance: Model) -> None:
        raise ValidationError({"email": ["blocked domain"]})

    Type.before("create", reject)

    error, instance = asyncio.run(Type.create({"email": "valid@email.com"}))

    assert isinstance(error, ValidationError)
    assert error.errors == {"email": ["blocked domain"]}
    assert instance is None
    assert _backend(Type).documents == ()


def test_failing_hook_is_reported_not_raised() -> None:
    Type = _type()
    Type.before("create", lambda instance: 1 / 0)
    recorder = Recorder()

    error, instance = asyncio.run(Type.create({"email": "valid@email.com"}, recorder))

    assert isinstance(error, HookError)
    assert isinstance(error.__cause__, ZeroDivisionError)
    assert instance is None
    assert len(recorder.calls) == 1
    assert _backend(Type).documents == ()


def test_after_create_hook_sees_stored_instance() -> None:
    Type = _type()
    seen: list[int] = []
    Type.after("create", lambda instance: seen.append(len(Type.backend.documents)))

    asyncio.run(Type.create({"email": "valid@email.com"}))

    assert seen == [1]


def test_duplicate_identity_is_a_backend_error() -> None:
    Type = _type()
    asyncio.run(Type.create({"_id": "same", "email": "valid@email.com"}))

    error, instance = asyncio.run(Type.create({"_id": "same", "email": "other@email.com"}))

    assert isinstance(error, BackendError)
    assert instance is None
    assert len(_backend(Type).documents) == 1


def test_find_by_attribute() -> None:
    Type = _type()

    async def scenario() -> Outcome:
        await Type.create({"email": "valid@email.com"})
        return await Type.find({"email": "valid@email.com"})

    error, instance = asyncio.run(scenario())

    assert error is None
    assert isinstance(instance, Type)
    assert instance.email == "valid@email.com"


def test_find_reports_missing_documents() -> None:
    Type = _type()
    recorder = Recorder()

    error, instance = asyncio.run(Type.find({"email": "nobody@email.com"}, recorder))

    assert isinstance(error, NotFoundError)
    assert instance is None
    assert recorder.calls == [(error, None)]


def test_find_all() -> None:
    Type = _type()

    async def scenario() -> Outcome:
        await Type.create({"email": "a@email.com", "random": "x"})
        await Type.create({"email": "b@email.com", "random": "x"})
        await Type.create({"email": "c@email.com", "random": "y"})
        return await Type.find_all({"random": "x"})

    error, instances = asyncio.run(scenario())

    assert error is None
    assert [instance.email for instance in instances] == ["a@email.com", "b@email.com"]
    assert all(isinstance(instance, Type) for instance in instances)


def test_update_with_valid_data(clock: list[datetime]) -> None:
    Type = _type()

    async def scenario() -> Outcome:
        _, created = await Type.create({"email": "initial@email.com"})
        return await Type.update({"_id": created._id}, {"email": "updated@email.com"})

    error, instance = asyncio.run(scenario())

    assert error is None
    assert instance.email == "updated@email.com"
    assert instance.created == clock[0]
    assert instance.modified == clock[1]
    assert instance.modified != instance.created
    stored = _backend(Type).documents[0]
    assert stored["email"] == "updated@email.com"
    assert stored["created"] == clock[0]
    assert stored["modified"] == clock[1]


def test_update_with_invalid_data() -> None:
    Type = _type()
    recorder = Recorder()

    async def scenario() -> Outcome:
        _, created = await Type.create({"email": "initial@email.com"})
        return await Type.update({"_id": created._id}, {"email": "not-valid"}, recorder)

    error, instance = asyncio.run(scenario())

    assert isinstance(error, ValidationError)
    assert instance is None
    assert recorder.calls == [(error, None)]
    assert _backend(Type).documents[0]["email"] == "initial@email.com"


def test_update_runs_validate_and_update_hooks() -> None:
    Type = _type()
    Type.before("update", lambda instance: setattr(instance, "random", "touched"))

    async def scenario() -> Outcome:
        _, created = await Type.create({"email": "initial@email.com"})
        return await Type.update({"email": "initial@email.com"}, {})

    error, instance = asyncio.run(scenario())

    assert error is None
    assert instance.random == "touched"
    assert _backend(Type).documents[0]["random"] == "touched"


def test_update_drops_undeclared_changes() -> None:
    Type = _type()

    async def scenario() -> Outcome:
        _, created = await Type.create({"email": "initial@email.com"})
        return await Type.update({"_id": created._id}, {"hacker": "p0wn3d"})

    error, _ = asyncio.run(scenario())

    assert error is None
    assert "hacker" not in _backend(Type).documents[0]


def test_update_of_missing_document() -> None:
    Type = _type()

    error, instance = asyncio.run(Type.update({"_id": "missing"}, {"email": "a@email.com"}))

    assert isinstance(error, NotFoundError)
    assert instance is None


def _grouped() -> type[Model]:
    return Model.extend(
        None,
        {
            "schema": {"group": {"type": "string"}, "name": {"type": "string"}},
            "unique_id": None,
        },
        name="Member",
    )


def test_update_without_identity_keeps_other_matches(clock: list[datetime]) -> None:
    Member = _grouped()

    async def scenario() -> Outcome:
        await Member.create({"group": "g", "name": "a"})
        await Member.create({"group": "g", "name": "b"})
        return await Member.update({"group": "g"}, {"group": "h"})

    error, instance = asyncio.run(scenario())

    assert error is None
    assert instance.name == "a"
    stored = _backend(Member).documents
    assert [document["name"] for document in stored] == ["a", "b"]
    assert [document["group"] for document in stored] == ["h", "h"]
    assert stored[0]["created"] == clock[0]
    assert stored[1]["created"] == clock[1]
    assert all(document["modified"] == clock[2] for document in stored)
    assert all("_id" not in document for document in stored)


def test_update_without_identity_writes_hook_changes() -> None:
    Member = _grouped()
    Member.before("update", lambda instance: setattr(instance, "name", "renamed"))

    async def scenario() -> Outcome:
        await Member.create({"group": "g", "name": "a"})
        await Member.create({"group": "x", "name": "b"})
        return await Member.update({"group": "g"}, {})

    error, _ = asyncio.run(scenario())

    assert error is None
    assert [document["name"] for document in _backend(Member).documents] == ["renamed", "b"]


def test_destroy_without_identity_removes_every_match() -> None:
    Member = _grouped()
    recorder = Recorder()

    async def scenario() -> Outcome:
        await Member.create({"group": "g", "name": "a"})
        await Member.create({"group": "g", "name": "b"})
        await Member.create({"group": "x", "name": "c"})
        return await Member.destroy({"group": "g"}, recorder)

    error, result = asyncio.run(scenario())

    assert error is None
    assert result is None
    assert recorder.calls == [(None, None)]
    assert [document["name"] for document in _backend(Member).documents] == ["c"]


def test_destroy_existing_instance() -> None:
    Type = _type()
    recorder = Recorder()

    async def scenario() -> Outcome:
        _, keep = await Type.create({"email": "keep@email.com"})
        _, drop = await Type.create({"email": "drop@email.com"})
        assert len(_backend(Type).documents) == 2
        return await Type.destroy({"_id": drop._id}, recorder)

    error, result = asyncio.run(scenario())

    assert error is None
    assert result is None
    assert recorder.calls == [(None, None)]
    documents = _backend(Type).documents
    assert len(documents) == 1
    assert documents[0]["email"] == "keep@email.com"


def test_destroy_missing_document() -> None:
    Type = _type()

    error, _ = asyncio.run(Type.destroy({"_id": "missing"}))

    assert isinstance(error, NotFoundError)


def test_destroy_hooks() -> None:
    Type = _type()
    events: list[tuple[str, str]] = []
    Type.before("destroy", lambda instance: events.append(("before", instance.email)))
    Type.after("destroy", lambda instance: events.append(("after", instance.email)))

    async def scenario() -> Outcome:
        _, created = await Type.create({"email": "gone@email.com"})
        return await Type.destroy({"_id": created._id})

    error, _ = asyncio.run(scenario())

    assert error is None
    assert events == [("before", "gone@email.com"), ("after", "gone@email.com")]
    assert _backend(Type).documents == ()


def test_destroy_hook_can_veto() -> None:
    Type = _type()

    def protect(instance: Model) -> None:
        raise ValidationError({"_id": ["protected"]})

    Type.before("destroy", protect)

    async def scenario() -> Outcome:
        _, created = await Type.create({"email": "kept@email.com"})
        return await Type.destroy({"_id": created._id})

    error, _ = asyncio.run(scenario())

    assert isinstance(error, ValidationError)
    assert len(_backend(Type).documents) == 1


def test_backend_errors_pass_through_unchanged() -> None:
    failure = BackendError("disk full")

    class FailingBackend(MemoryBackend):
        async def store(self, document: dict[str, Any]) -> None:
            raise failure

    Type = _type(backend=FailingBackend())

    error, instance = asyncio.run(Type.create({"email": "valid@email.com"}))

    assert error is failure
    assert instance is None


def test_subtypes_do_not_share_documents() -> None:
    Type = _type()
    SubType = Type.extend()

    asyncio.run(SubType.create({"email": "valid@email.com"}))

    assert _backend(Type).documents == ()
    assert len(_backend(SubType).documents) == 1


def test_reset_clears_documents() -> None:
    Type = _type()
    asyncio.run(Type.create({"email": "valid@email.com"}))

    _backend(Type).reset()

    assert _backend(Type).documents == ()
