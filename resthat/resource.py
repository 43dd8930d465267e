"""
Resource - path computation for a maker.

A nested maker's paths start with each ancestor's segment, outermost first:

    /posts/:post_id/comments/:id
    ^^^^^^^^^^^^^^^ parent segment
"""

from __future__ import annotations

import re
import uuid
from typing import TYPE_CHECKING, Any, List

from .faults import PathParameterFault

if TYPE_CHECKING:
    from .maker import Maker


PLACEHOLDER = re.compile(r":([A-Za-z_][A-Za-z0-9_]*)")

_SCALARS = (str, int, float, uuid.UUID)


class Resource:
    """Computes path prefixes and concrete paths for one maker."""

    def __init__(self, maker: "Maker"):
        self.maker = maker

    def member_segment(self) -> str:
        """This maker's prefix followed by its member placeholder (``/posts/:post_id``)."""
        return f"{self.maker.prefix().rstrip('/')}/:{self.maker.model.singular}_id"

    def prefix(self) -> str:
        """Base path including every ancestor's member segment."""
        segments = [p.resource.member_segment() for p in reversed(self.maker.parents())]
        segments.append(self.maker.prefix().rstrip("/"))
        return "".join(segments)

    def path_for(self, pattern: str) -> str:
        """Append an action pattern to the base path."""
        base = self.prefix()
        if pattern in ("", "/"):
            return base or "/"
        return base + pattern

    def path(self, pattern: str = "/", *args: Any, **params: Any) -> str:
        """
        Interpolate ``:name`` placeholders in ``prefix + pattern``.

        Values come from keyword arguments, then from attributes of record
        arguments, then from scalar arguments in order.

        Example:
            resource.path("/:id", 3, 5)             # → "/posts/3/comments/5"
            resource.path("/:id/edit", comment)     # uses comment.post_id, comment.id
        """
        template = self.path_for(pattern)
        records = [a for a in args if not isinstance(a, _SCALARS)]
        scalars = [a for a in args if isinstance(a, _SCALARS)]
        missing: List[str] = []

        def substitute(match: re.Match) -> str:
            name = match.group(1)
            if name in params:
                return str(params[name])
            for record in records:
                if hasattr(record, name):
                    return str(getattr(record, name))
            if scalars:
                return str(scalars.pop(0))
            missing.append(name)
            return match.group(0)

        path = PLACEHOLDER.sub(substitute, template)
        if missing:
            raise PathParameterFault(template, missing)
        return path

    def __repr__(self) -> str:
        return f"Resource({self.prefix()!r})"
