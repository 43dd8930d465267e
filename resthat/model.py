"""
Model proxy - the maker's view of the model layer.

The model class itself is opaque: resthat only calls the finder and record
callbacks with a *proxy* (the class, or a parent record's association when
the maker is nested), plus ``new``/``save``/``destroy`` on records.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional

from .faults import RecordNotFoundFault
from .request import nest_params
from .utils import call

if TYPE_CHECKING:
    from .maker import Maker


_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def underscore(name: str) -> str:
    """``BlogPost`` → ``blog_post``."""
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def pluralize(word: str) -> str:
    """
    Simple English pluralization.

    Examples:
        >>> pluralize("post")
        'posts'
        >>> pluralize("category")
        'categories'
        >>> pluralize("box")
        'boxes'
    """
    if re.search(r"[^aeiou]y$", word):
        return word[:-1] + "ies"
    if re.search(r"(s|x|z|ch|sh)$", word):
        return word + "es"
    return word + "s"


class ModelProxy:
    """
    Model naming and record access for one maker.

    Plural names can be overridden on the model with ``__plural__`` or an
    inner ``Meta.verbose_name_plural``.
    """

    def __init__(self, maker: "Maker"):
        self.maker = maker
        self.klass = maker.klass
        self.name: str = self.klass.__name__
        self.singular: str = underscore(self.name)
        self.plural: str = self._plural_name()

    def _plural_name(self) -> str:
        explicit = getattr(self.klass, "__plural__", None)
        if not explicit:
            meta = getattr(self.klass, "Meta", None)
            explicit = getattr(meta, "verbose_name_plural", None) if meta else None
        return explicit or pluralize(self.singular)

    async def proxy(self, params: Mapping[str, Any]) -> Any:
        """
        The object handed to finder/record callbacks.

        For nested makers this is the owning record's association, so lookups
        are scoped to the parent.
        """
        parent = self.maker.parent
        if parent is None:
            return self.klass
        owner = await parent.model.find_owned(params)
        if owner is None:
            raise RecordNotFoundFault(parent.model.name)
        return getattr(owner, self.plural)

    async def all(self, params: Mapping[str, Any]) -> Any:
        return await call(self.maker.finder(), await self.proxy(params), params)

    async def find(self, params: Mapping[str, Any]) -> Any:
        return await call(self.maker.record(), await self.proxy(params), params)

    async def find_owned(self, params: Mapping[str, Any]) -> Any:
        """Find this model's record when it is the parent of a nested request."""
        scoped = dict(params)
        scoped["id"] = params.get(f"{self.singular}_id")
        return await self.find(scoped)

    def attributes(self, params: Mapping[str, Any]) -> Dict[str, Any]:
        """Record attributes submitted as ``<singular>[field]`` parameters."""
        attrs = nest_params(params).get(self.singular)
        return dict(attrs) if isinstance(attrs, Mapping) else {}

    async def new(self, params: Optional[Mapping[str, Any]] = None) -> Any:
        params = params or {}
        target = await self.proxy(params)
        builder = getattr(target, "new", None) or target
        return await call(builder, **self.attributes(params))

    async def update(self, params: Mapping[str, Any]) -> Any:
        """Find the record and assign submitted attributes; None when missing."""
        record = await self.find(params)
        if record is None:
            return None
        for key, value in self.attributes(params).items():
            setattr(record, key, value)
        return record

    def __repr__(self) -> str:
        return f"ModelProxy({self.name})"
