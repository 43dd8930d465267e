"""
Maker configuration.

``MakerOptions`` is the per-maker settings record. It is owned by exactly one
maker and changed only through that maker's accessor methods; see
``resthat.maker.Maker``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Dict, FrozenSet, Mapping, Optional

if TYPE_CHECKING:
    from .maker import Maker
    from .responder import BaseRenderer


ALL = "all"


@dataclass(frozen=True)
class Credentials:
    """Basic-auth credentials used by the default authenticator."""

    username: str = "username"
    password: str = "password"
    realm: str = "The App"

    def merge(self, **changes: Optional[str]) -> "Credentials":
        """Return a copy with every non-None field in ``changes`` applied."""
        values = {k: v for k, v in changes.items() if v is not None}
        return Credentials(
            username=values.get("username", self.username),
            password=values.get("password", self.password),
            realm=values.get("realm", self.realm),
        )


def default_finder(model: Any, params: Mapping[str, Any]) -> Any:
    """Load every record of ``model``."""
    return model.all()


def default_record(model: Any, params: Mapping[str, Any]) -> Any:
    """Load one record of ``model`` by the ``id`` parameter."""
    return model.find_by_id(params.get("id"))


@dataclass
class MakerOptions:
    """
    Per-maker settings.

    Attributes:
        only: Enabled action names
        protect: Action names requiring authentication (subset of ``only``)
        finder: ``(model_proxy, params) -> collection``
        record: ``(model_proxy, params) -> record or None``
        authenticator: ``(username, password) -> bool``; None means compare
            against ``credentials``
        credentials: Username, password and realm
        formats: Format name → renderer, consulted before the built-in ones
        prefix: Path prefix; None until first read
        parent: Maker this one is nested under. A back-reference only; the
            parent owns its children, never the reverse
    """

    only: FrozenSet[str] = frozenset()
    protect: FrozenSet[str] = frozenset()
    finder: Callable[..., Any] = default_finder
    record: Callable[..., Any] = default_record
    authenticator: Optional[Callable[..., Any]] = None
    credentials: Credentials = field(default_factory=Credentials)
    formats: Dict[str, "BaseRenderer"] = field(default_factory=dict)
    prefix: Optional[str] = None
    parent: Optional["Maker"] = field(default=None, repr=False)
