"""
Request collaborator.

``HatRequest`` is the minimal request surface a maker needs from its host:
verb, path, merged parameters, headers, and a way to abort with a status.
"""

from __future__ import annotations

import base64
import binascii
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

from .faults import HTTPFault


_NESTED_KEY = re.compile(r"^([^\[\]]+)((?:\[[^\[\]]*\])+)$")


def nest_params(params: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Expand bracketed keys into nested dicts.

    Example::

        nest_params({"post[title]": "Hi", "id": "5"})
        # → {"post": {"title": "Hi"}, "id": "5"}
    """
    nested: Dict[str, Any] = {}
    for key, value in params.items():
        m = _NESTED_KEY.match(key)
        if not m:
            nested[key] = value
            continue
        parts = [m.group(1)] + re.findall(r"\[([^\[\]]*)\]", m.group(2))
        current = nested
        for part in parts[:-1]:
            child = current.get(part)
            if not isinstance(child, dict):
                child = current[part] = {}
            current = child
        current[parts[-1]] = value
    return nested


class Headers:
    """Case-insensitive header mapping."""

    def __init__(self, headers: Optional[Mapping[str, str]] = None):
        self._index: Dict[str, str] = {}
        for name, value in (headers or {}).items():
            self._index[name.lower()] = value

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self._index.get(name.lower(), default)

    def items(self):
        return self._index.items()

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._index

    def __getitem__(self, name: str) -> str:
        return self._index[name.lower()]

    def __len__(self) -> int:
        return len(self._index)

    def __repr__(self) -> str:
        return f"Headers({self._index!r})"


@dataclass
class HatRequest:
    """
    A request as seen by a maker.

    Attributes:
        method: HTTP verb, upper-case
        path: Request path
        params: Query, body and path parameters merged (path parameters win)
        headers: Case-insensitive headers
    """

    method: str = "GET"
    path: str = "/"
    params: Dict[str, Any] = field(default_factory=dict)
    headers: Headers = field(default_factory=Headers)

    def __post_init__(self):
        self.method = self.method.upper()
        if not isinstance(self.headers, Headers):
            self.headers = Headers(self.headers)

    @property
    def format(self) -> Optional[str]:
        """Output format requested through a ``format`` parameter (``/posts.json``)."""
        return self.params.get("format")

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.headers.get(name, default)

    def abort(self, status: int, message: Optional[str] = None):
        """End the request with ``status``."""
        raise HTTPFault(status, message)

    def basic_auth(self) -> Optional[Tuple[str, str]]:
        """
        Credentials from a ``Basic`` Authorization header.

        Returns None when the header is missing or malformed.
        """
        auth_header = self.header("authorization", "")
        scheme, _, encoded = auth_header.partition(" ")
        if scheme.lower() != "basic" or not encoded:
            return None
        try:
            decoded = base64.b64decode(encoded.strip(), validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            return None
        if ":" not in decoded:
            return None
        username, _, password = decoded.partition(":")
        return username, password
