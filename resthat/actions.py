"""
Action Registry - the process-wide catalog of named actions.

Each action pairs a name with a path pattern, an HTTP verb and a handler.
Registration happens at startup; makers snapshot the registered names when
they are configured and the router walks the registry in insertion order.

Example:
    from resthat import action

    @action("publish", "/:id/publish", verb="POST")
    async def publish(ctx):
        record = await ctx.model.find(ctx.params)
        if record is None:
            ctx.responder.not_found(ctx.request)
        record.publish()
        return await ctx.responder.success("publish", ctx.request, record)
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterator, Mapping, Optional, TypeVar

from .faults import InvalidActionFault, RegistryFrozenFault, UnknownActionFault


F = TypeVar("F", bound=Callable[..., Any])

VERBS = ("GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS")


@dataclass(frozen=True)
class ActionDefinition:
    """
    An immutable registry entry.

    Attributes:
        name: Unique action name (e.g. "show")
        path: Path pattern relative to the resource prefix (e.g. "/:id")
        verb: HTTP verb
        handler: Callable receiving a MakerContext; may be a coroutine function
    """

    name: str
    path: str
    verb: str
    handler: Callable[..., Any]


class ActionRegistry:
    """
    Ordered registry of action definitions.

    Insertion order is preserved so that route registration is deterministic.
    Re-registering a name overwrites the definition in place.
    """

    def __init__(self):
        self._actions: Dict[str, ActionDefinition] = {}
        self._frozen = False

    def register(
        self,
        name: str,
        path: str,
        verb: str = "GET",
        handler: Optional[Callable[..., Any]] = None,
    ) -> ActionDefinition:
        """Register (or overwrite) an action."""
        if self._frozen:
            raise RegistryFrozenFault(name)
        if not name:
            raise InvalidActionFault(repr(name), "name must be a non-empty string")
        if not callable(handler):
            raise InvalidActionFault(name, "handler must be callable")
        verb = verb.upper()
        if verb not in VERBS:
            raise InvalidActionFault(name, f"unsupported verb '{verb}'")
        if not path.startswith("/"):
            raise InvalidActionFault(name, f"path '{path}' must start with '/'")

        definition = ActionDefinition(name=name, path=path, verb=verb, handler=handler)
        self._actions[name] = definition
        return definition

    def action(self, name: str, path: str, verb: str = "GET") -> Callable[[F], F]:
        """Decorator form of :meth:`register`."""

        def decorator(func: F) -> F:
            self.register(name, path, verb=verb, handler=func)
            return func

        return decorator

    def all(self) -> Mapping[str, ActionDefinition]:
        """Read-only view of every definition, in registration order."""
        return MappingProxyType(self._actions)

    def names(self) -> list[str]:
        return list(self._actions)

    def get(self, name: str) -> ActionDefinition:
        try:
            return self._actions[name]
        except KeyError:
            raise UnknownActionFault([name]) from None

    def freeze(self) -> None:
        """Refuse further registration."""
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def __contains__(self, name: object) -> bool:
        return name in self._actions

    def __iter__(self) -> Iterator[str]:
        return iter(self._actions)

    def __len__(self) -> int:
        return len(self._actions)

    def __repr__(self) -> str:
        return f"ActionRegistry({', '.join(self._actions)})"


# Process-wide registry used by makers unless they are given their own
registry = ActionRegistry()
action = registry.action
