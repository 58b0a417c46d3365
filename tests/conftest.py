"""Test configuration and fixtures."""

from __future__ import annotations

import os
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any

import pytest

from pass_indexer_checker.config import CheckerConfig
from pass_indexer_checker.models import IndexMapping, User


class FakeRepository:
    """In-memory repository whose index lookups replay a script."""

    def __init__(
        self,
        lookups: Iterable[str | None] = (),
        submitters: int = 10,
        created_id: str | None = "U1",
        on_find: Callable[[], None] | None = None,
    ) -> None:
        self.lookups = list(lookups)
        self.submitters = {f"S{i}" for i in range(submitters)}
        self.created_id = created_id
        self.on_find = on_find
        self.created: list[User] = []
        self.deleted: list[str] = []
        self.calls: list[tuple[str, Any]] = []
        self.max_results: int | None = None

    def create_resource(self, record: User) -> str | None:
        self.calls.append(("create", record))
        self.created.append(record)
        return self.created_id

    def delete_resource(self, resource_id: str) -> None:
        self.calls.append(("delete", resource_id))
        self.deleted.append(resource_id)

    def find_by_attribute(self, record_type: type[User], attribute: str, value: Any) -> str | None:
        self.calls.append(("find", (attribute, value)))
        if self.on_find is not None:
            self.on_find()
        if len(self.lookups) > 1:
            return self.lookups.pop(0)
        # The last scripted answer keeps being returned
        return self.lookups[0] if self.lookups else None

    def find_all_by_attribute(
        self,
        record_type: type[User],
        attribute: str,
        value: Any,
        max_results: int | None = None,
    ) -> set[str]:
        self.calls.append(("find_all", (attribute, value)))
        self.max_results = max_results
        return set(self.submitters)


class FakeIndex:
    """Index whose mapping has a fixed number of fields."""

    def __init__(self, fields: int = 11) -> None:
        self.mapping = IndexMapping(
            index="pass",
            properties={f"field{i}": {"type": "keyword"} for i in range(fields)},
        )

    def get_mapping(self) -> IndexMapping:
        return self.mapping


class SleepRecorder:
    """Stands in for the poll sleep and remembers every requested delay."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep PASS_* variables and stray properties files out of the tests."""
    for name in list(os.environ):
        if name.upper().startswith("PASS_"):
            monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def config() -> CheckerConfig:
    """Create test configuration."""
    return CheckerConfig(
        fedora_baseurl="http://fcrepo.test/fcrepo/rest",
        fedora_user="fedoraAdmin",
        fedora_password="moo",
        elasticsearch_url="http://es.test:9200",
        elasticsearch_limit=3,
        retries=50,
        poll_interval=3.0,
    )


@pytest.fixture
def sleeper() -> SleepRecorder:
    """Record poll sleeps instead of sleeping."""
    return SleepRecorder()


@pytest.fixture
def mapping_response() -> dict[str, Any]:
    """Index introspection response with eleven mapped fields."""
    return {
        "pass": {
            "aliases": {},
            "mappings": {
                "_doc": {
                    "properties": {f"field{i}": {"type": "keyword"} for i in range(11)},
                }
            },
            "settings": {},
        }
    }
