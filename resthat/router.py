"""
Router - binds a maker's enabled actions to a host.

Routes are produced in registry insertion order, parent makers before their
children, and each action's ``.:format`` variant before its plain path.
Hosts MUST resolve routes first-match in registration order: ``/posts/new``
is registered before ``/posts/:id`` and would otherwise be shadowed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, List, Optional, Protocol

if TYPE_CHECKING:
    from .maker import Maker
    from .request import HatRequest


Endpoint = Callable[["HatRequest"], Awaitable[Any]]

logger = logging.getLogger("resthat.router")


class RouteHost(Protocol):
    """What a host must offer: pattern routes with ``:name`` parameters."""

    def add_route(self, verb: str, path: str, endpoint: Endpoint) -> None:
        ...


@dataclass(frozen=True)
class RouteBinding:
    """One (verb, path) registration for a maker action."""

    verb: str
    path: str
    action: str
    maker: "Maker" = field(compare=False, repr=False)


class Router:
    """
    Walks the action registry for a maker and its nested makers.

    Args:
        maker: Root maker
        format_routes: Register ``<path>.:format`` variants; defaults to the
            maker's ``format_routes`` setting
    """

    def __init__(self, maker: "Maker", format_routes: Optional[bool] = None):
        self.maker = maker
        self.format_routes = (
            maker.settings.format_routes if format_routes is None else format_routes
        )

    def routes(self) -> List[RouteBinding]:
        bindings: List[RouteBinding] = []
        for maker in self.maker.walk():
            enabled = maker.only()
            for name, definition in maker.registry.all().items():
                if name not in enabled:
                    continue
                path = maker.resource.path_for(definition.path)
                if self.format_routes and path != "/":
                    bindings.append(RouteBinding(definition.verb, f"{path}.:format", name, maker))
                bindings.append(RouteBinding(definition.verb, path, name, maker))
        return bindings

    def generate(self, host: RouteHost) -> List[RouteBinding]:
        """Register every binding with ``host`` and return them."""
        bindings = self.routes()
        for binding in bindings:
            host.add_route(binding.verb, binding.path, self.endpoint(binding.maker, binding.action))
            logger.debug("Bound %s %s -> %s", binding.verb, binding.path, binding.action)
        return bindings

    @staticmethod
    def endpoint(maker: "Maker", action: str) -> Endpoint:
        async def endpoint(request: "HatRequest") -> Any:
            return await maker.handle(action, request)

        endpoint.__name__ = f"{maker.model.singular}_{action}"
        return endpoint
