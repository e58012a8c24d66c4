"""Shared pytest fixtures for umber-cli tests."""

from __future__ import annotations

from typing import Any

import pytest

from umber_cli.config import Config
from umber_cli.errors import NodeBBError
from umber_cli.importer.codec import filename_tag
from umber_cli.importer.models import RemoteCategory, RemoteTopic, TopicMetadata

WRITE_METHODS = (
    "create_category",
    "create_topic",
    "update_post",
    "update_topic_metadata",
    "create_reply",
)


class FakeNodeBBClient:
    """Minimal NodeBBClient replacement for testing.

    Simulates categories, topics and posts with in-memory dicts and
    records every write call in ``calls``.

    Args:
        fail_on: Method name that raises ``NodeBBError``.
        fail_after: Number of successful calls to *fail_on* before it fails.
    """

    def __init__(self, fail_on: str | None = None, fail_after: int = 0) -> None:
        self.categories: list[RemoteCategory] = []
        self.topics: dict[int, dict[str, Any]] = {}
        self.posts: dict[int, str] = {}
        self.calls: list[tuple[str, tuple]] = []
        self.list_calls: list[int | None] = []
        self.fail_on = fail_on
        self.fail_after = fail_after
        self._next_id = 1

    # -- helpers -------------------------------------------------------

    def _new_id(self) -> int:
        value = self._next_id
        self._next_id += 1
        return value

    def _record(self, name: str, *args: Any) -> None:
        if name == self.fail_on:
            if self.fail_after <= 0:
                raise NodeBBError(f"{name} failed", status_code=500)
            self.fail_after -= 1
        self.calls.append((name, args))

    @property
    def writes(self) -> list[tuple[str, tuple]]:
        return [c for c in self.calls if c[0] in WRITE_METHODS]

    def add_category(self, name: str, parent_id: int | None = None) -> int:
        category = RemoteCategory(id=self._new_id(), name=name, parent_id=parent_id)
        self.categories.append(category)
        return category.id

    def topic_posts(self, topic_id: int) -> list[str]:
        return [self.posts[pid] for pid in self.topics[topic_id]["post_ids"]]

    def topic_by_title(self, title: str) -> dict[str, Any]:
        return next(t for t in self.topics.values() if t["title"] == title)

    # -- NodeBBClient interface ----------------------------------------

    def ping(self) -> dict[str, Any]:
        return {"version": "3.0.0"}

    def list_categories(self, parent_id: int | None = None) -> list[RemoteCategory]:
        self.list_calls.append(parent_id)
        return [c for c in self.categories if c.parent_id == parent_id]

    def create_category(
        self, name: str, parent_id: int | None = None
    ) -> RemoteCategory:
        self._record("create_category", name, parent_id)
        category = RemoteCategory(id=self._new_id(), name=name, parent_id=parent_id)
        self.categories.append(category)
        return category

    def find_topic_by_tag(
        self, tag: str, category_id: int | None
    ) -> RemoteTopic | None:
        if category_id is None:
            return None
        for tid, topic in self.topics.items():
            if topic["cid"] != category_id:
                continue
            if tag.lower() not in {t.lower() for t in topic["tags"]}:
                continue
            if filename_tag(topic["title"]) == tag.lower():
                return RemoteTopic(
                    id=tid,
                    slug=topic["slug"],
                    main_post_id=topic["post_ids"][0],
                    title=topic["title"],
                    tags=frozenset(topic["tags"]),
                    metadata=TopicMetadata.from_custom_data(topic["custom_data"]),
                )
        return None

    def create_topic(
        self,
        category_id: int,
        title: str,
        content: str,
        tags: list[str],
        custom_data: dict[str, Any],
        uid: int | None = None,
    ) -> RemoteTopic:
        self._record("create_topic", category_id, title, content, tags, custom_data, uid)
        tid = self._new_id()
        pid = self._new_id()
        self.posts[pid] = content
        slug = f"{tid}/{title.lower().replace('.', '-')}"
        self.topics[tid] = {
            "tid": tid,
            "cid": category_id,
            "title": title,
            "tags": list(tags),
            "custom_data": dict(custom_data),
            "slug": slug,
            "post_ids": [pid],
        }
        return RemoteTopic(id=tid, slug=slug, main_post_id=pid, title=title)

    def update_post(self, post_id: int, content: str, uid: int | None = None) -> None:
        self._record("update_post", post_id, content, uid)
        self.posts[post_id] = content

    def update_topic_metadata(self, topic_id: int, custom_data: dict[str, Any]) -> None:
        self._record("update_topic_metadata", topic_id, custom_data)
        self.topics[topic_id]["custom_data"] = dict(custom_data)

    def create_reply(self, topic_id: int, content: str, uid: int | None = None) -> int:
        self._record("create_reply", topic_id, content, uid)
        pid = self._new_id()
        self.posts[pid] = content
        self.topics[topic_id]["post_ids"].append(pid)
        return pid

    def get_topic_post_ids(self, topic_id: int) -> list[int]:
        return list(self.topics[topic_id]["post_ids"])


@pytest.fixture
def mock_config():
    """Create a Config instance for testing."""
    return Config(
        nodebb_url="https://forum.example.com",
        api_token="test-token",
        insecure=False,
    )


@pytest.fixture
def fake_client():
    """An empty in-memory forum."""
    return FakeNodeBBClient()


@pytest.fixture
def client_factory():
    """The fake client class, for tests that configure failures."""
    return FakeNodeBBClient


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Keep developer environment variables out of the tests."""
    for key in (
        "NODEBB_URL",
        "NODEBB_API_TOKEN",
        "NODEBB_INSECURE",
        "NODEBB_TIMEOUT",
        "UMBER_DEBUG",
        "UMBER_CONFIG",
        "LOG_LEVEL",
        "GITHUB_TOKEN",
    ):
        monkeypatch.delenv(key, raising=False)
