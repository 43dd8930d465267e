"""
Shared test fixtures and helpers for the resthat test suite.

Models are small in-memory classes exposing the surface the default finder
and record callbacks use: ``all()``, ``find_by_id()``, ``new()``, and
``save()``/``destroy()`` on records.
"""

import base64
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pytest

from resthat.actions import ActionRegistry
from resthat.default_actions import install
from resthat.request import HatRequest
from resthat.settings import HatSettings


# ============================================================================
# In-memory models
# ============================================================================


class Post:
    """A post; ``title`` is required."""

    _store: Dict[int, "Post"] = {}
    _next_id = 1

    def __init__(self, title: Optional[str] = None, body: str = "", id: Optional[int] = None):
        self.id = id
        self.title = title
        self.body = body
        self.updated_at = datetime(2024, 1, 1, tzinfo=timezone.utc)
        self.errors: Dict[str, List[str]] = {}

    @classmethod
    def reset(cls):
        cls._store = {}
        cls._next_id = 1

    @classmethod
    def all(cls) -> List["Post"]:
        return list(cls._store.values())

    @classmethod
    def find_by_id(cls, id: Any) -> Optional["Post"]:
        try:
            return cls._store.get(int(id))
        except (TypeError, ValueError):
            return None

    @classmethod
    def new(cls, **attrs) -> "Post":
        return cls(**attrs)

    @classmethod
    def create(cls, **attrs) -> "Post":
        post = cls(**attrs)
        assert post.save()
        return post

    def save(self) -> bool:
        self.errors = {}
        if not self.title:
            self.errors["title"] = ["can't be blank"]
            return False
        if self.id is None:
            self.id = Post._next_id
            Post._next_id += 1
        Post._store[self.id] = self
        return True

    def destroy(self) -> None:
        Post._store.pop(self.id, None)

    @property
    def comments(self) -> "CommentAssociation":
        return CommentAssociation(self)


class Comment:
    """A comment belonging to a post."""

    _store: Dict[int, "Comment"] = {}
    _next_id = 1

    def __init__(self, body: Optional[str] = None, post_id: Optional[int] = None, id: Optional[int] = None):
        self.id = id
        self.post_id = post_id
        self.body = body
        self.errors: Dict[str, List[str]] = {}

    @classmethod
    def reset(cls):
        cls._store = {}
        cls._next_id = 1

    @classmethod
    def all(cls) -> List["Comment"]:
        return list(cls._store.values())

    @classmethod
    def find_by_id(cls, id: Any) -> Optional["Comment"]:
        try:
            return cls._store.get(int(id))
        except (TypeError, ValueError):
            return None

    def save(self) -> bool:
        self.errors = {}
        if not self.body:
            self.errors["body"] = ["can't be blank"]
            return False
        if self.id is None:
            self.id = Comment._next_id
            Comment._next_id += 1
        Comment._store[self.id] = self
        return True

    async def destroy(self) -> None:
        Comment._store.pop(self.id, None)


class CommentAssociation:
    """``post.comments``: comment lookups scoped to one post."""

    def __init__(self, post: Post):
        self.post = post

    def all(self) -> List[Comment]:
        return [c for c in Comment._store.values() if c.post_id == self.post.id]

    def find_by_id(self, id: Any) -> Optional[Comment]:
        comment = Comment.find_by_id(id)
        if comment is not None and comment.post_id == self.post.id:
            return comment
        return None

    def new(self, **attrs) -> Comment:
        return Comment(post_id=self.post.id, **attrs)


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def clean_store():
    Post.reset()
    Comment.reset()
    yield
    Post.reset()
    Comment.reset()


@pytest.fixture
def registry() -> ActionRegistry:
    """A private registry holding the standard actions."""
    return install(ActionRegistry())


@pytest.fixture
def settings() -> HatSettings:
    return HatSettings(username="admin", password="secret", realm="Blog")


@pytest.fixture
def post() -> Post:
    return Post.create(title="Hello", body="First post")


# ============================================================================
# Request helpers
# ============================================================================


def basic_auth(username: str, password: str) -> Dict[str, str]:
    token = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
    return {"Authorization": f"Basic {token}"}


def make_request(
    method: str = "GET",
    path: str = "/",
    params: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> HatRequest:
    return HatRequest(method=method, path=path, params=dict(params or {}), headers=headers or {})


def make_scope(
    method: str = "GET",
    path: str = "/",
    query_string: str = "",
    headers: Optional[List[tuple]] = None,
) -> dict:
    """Build a minimal ASGI HTTP scope."""
    raw_headers = []
    for name, value in headers or []:
        raw_headers.append((name.encode("latin-1"), value.encode("latin-1")))
    return {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": method,
        "path": path,
        "query_string": query_string.encode("utf-8"),
        "headers": raw_headers,
    }


def make_receive(body: bytes = b""):
    """Create an ASGI receive callable from body bytes."""
    messages = [{"type": "http.request", "body": body, "more_body": False}]

    async def receive():
        if messages:
            return messages.pop(0)
        return {"type": "http.disconnect"}

    return receive


class SendCollector:
    """ASGI send callable that records messages."""

    def __init__(self):
        self.messages: List[dict] = []

    async def __call__(self, message: dict):
        self.messages.append(message)

    @property
    def status(self) -> int:
        return self.messages[0]["status"]

    @property
    def headers(self) -> Dict[str, str]:
        return {k.decode("latin-1"): v.decode("latin-1") for k, v in self.messages[0]["headers"]}

    @property
    def body(self) -> bytes:
        return b"".join(m.get("body", b"") for m in self.messages[1:])
