"""
Maker - the per-resource controller.

A maker is built once per resource declaration. It owns the resource's
configuration and runs every request through the same pipeline:

    enabled check → authorization (protected actions) → logged, timed handler

Example:
    from resthat import Maker

    posts = Maker(Post, only=["index", "show", "create"], protect=["create"])

    @posts.set_finder
    def published(model, params):
        return model.where(published=True)

    comments = posts.mount(Comment)      # /posts/:post_id/comments

    with posts.after("create") as on:
        on.format = "json"
"""

from __future__ import annotations

from typing import Any, Callable, Dict, FrozenSet, Iterable, Iterator, List, Optional, Union

from . import actions as _actions
from .actions import ActionRegistry
from .auth import BasicAuthGuard, default_authenticator
from .benchmark import RequestLogger
from .faults import ActionNotFoundFault, ConfigFault, ProtectedActionFault, UnknownActionFault
from .model import ModelProxy
from .options import ALL, Credentials, MakerOptions
from .request import HatRequest
from .resource import Resource
from .responder import BUILTIN_RENDERERS, BaseRenderer, CallableRenderer, Responder, ResponseMutator
from .router import RouteBinding, RouteHost, Router
from .settings import HatSettings
from .utils import call


class MakerContext:
    """
    What an action handler sees.

    Handlers are called as ``handler(ctx)``; the context exposes the owning
    maker's configuration surface alongside the request.
    """

    __slots__ = ("maker", "request")

    def __init__(self, maker: "Maker", request: HatRequest):
        self.maker = maker
        self.request = request

    @property
    def params(self) -> Dict[str, Any]:
        return self.request.params

    @property
    def model(self) -> ModelProxy:
        return self.maker.model

    @property
    def responder(self) -> Responder:
        return self.maker.responder

    @property
    def options(self) -> MakerOptions:
        return self.maker.options

    def finder(self) -> Callable[..., Any]:
        return self.maker.finder()

    def record(self) -> Callable[..., Any]:
        return self.maker.record()

    def resource_path(self, *args: Any, **params: Any) -> str:
        return self.maker.resource_path(*args, **params)

    def __repr__(self) -> str:
        return f"MakerContext({self.maker.model.name}, {self.request.method} {self.request.path})"


class Maker:
    """
    Controller for one model type.

    Args:
        klass: The model class
        registry: Action registry; defaults to the process-wide one
        settings: Process-level defaults (credentials, default format)
        parent: Maker this one is nested under
        **overrides: Applied through the setters, in this order: only,
            protect, username/password/realm, finder, record, authenticator,
            prefix, formats
    """

    def __init__(
        self,
        klass: type,
        registry: Optional[ActionRegistry] = None,
        settings: Optional[HatSettings] = None,
        parent: Optional["Maker"] = None,
        **overrides: Any,
    ):
        self.klass = klass
        self.registry = registry if registry is not None else _actions.registry
        self.settings = settings if settings is not None else HatSettings()
        self.options = MakerOptions(
            only=frozenset(self.registry.names()),
            credentials=Credentials(
                username=self.settings.username,
                password=self.settings.password,
                realm=self.settings.realm,
            ),
            parent=parent,
        )
        self.children: List["Maker"] = []
        self._parents: Optional[List["Maker"]] = None
        self._default_authenticator = default_authenticator(self.credentials)

        self.model = ModelProxy(self)
        self.resource = Resource(self)
        self.responder = Responder(self)
        self.guard = BasicAuthGuard(self)
        self.logger = RequestLogger()

        self.configure(**overrides)

    def configure(self, **overrides: Any) -> "Maker":
        """Apply overrides through the setters."""
        overrides = dict(overrides)
        if "only" in overrides:
            self.set_only(*overrides.pop("only"))
        if "protect" in overrides:
            value = overrides.pop("protect")
            self.protect(*([value] if isinstance(value, str) else value))
        credentials = {k: overrides.pop(k) for k in ("username", "password", "realm") if k in overrides}
        if credentials:
            self.protect(**credentials)
        if "finder" in overrides:
            self.set_finder(overrides.pop("finder"))
        if "record" in overrides:
            self.set_record(overrides.pop("record"))
        if "authenticator" in overrides:
            self.set_authenticator(overrides.pop("authenticator"))
        if "prefix" in overrides:
            self.set_prefix(overrides.pop("prefix"))
        for name, serializer in (overrides.pop("formats", None) or {}).items():
            self.set_format(name, serializer)
        if overrides:
            raise ConfigFault(
                "UNKNOWN_OPTION",
                f"Unknown maker option(s): {', '.join(sorted(overrides))}",
                metadata={"options": sorted(overrides)},
            )
        return self

    # ========================================================================
    # Dispatch
    # ========================================================================

    async def handle(self, action: str, request: HatRequest) -> Any:
        """
        Run ``action`` for ``request``.

        Raises:
            ActionNotFoundFault: ``action`` is not enabled
            UnauthorizedFault: ``action`` is protected and the credentials fail
        """
        if action not in self.only():
            raise ActionNotFoundFault(action)
        if action in self.protected():
            await self.guard.check(request)

        definition = self.registry.get(action)
        ctx = MakerContext(self, request)
        return await self.logger.benchmark(
            request, action, lambda: call(definition.handler, ctx),
        )

    def after(self, action: str) -> ResponseMutator:
        """Handle for customizing how ``action`` responds."""
        if action not in self.registry:
            raise UnknownActionFault([action])
        return ResponseMutator(self.responder.defaults[action])

    # ========================================================================
    # Configuration accessors
    # ========================================================================

    def only(self) -> FrozenSet[str]:
        """Enabled actions."""
        return self.options.only

    def set_only(self, *actions: str) -> FrozenSet[str]:
        names = frozenset(actions)
        self._check_known(names)
        dropped = self.options.protect - names
        if dropped:
            raise ProtectedActionFault(dropped)
        self.options.only = names
        return names

    def protected(self) -> FrozenSet[str]:
        """Actions requiring authentication."""
        return self.options.protect

    def protect(
        self,
        *actions: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        realm: Optional[str] = None,
    ) -> FrozenSet[str]:
        """
        Protect actions, merging any credential fields first.

        ``protect("all")`` protects every currently enabled action; later
        changes to ``only`` are not tracked. With no actions only the
        credentials change; use :meth:`unprotect` to lift protection.
        """
        self.options.credentials = self.options.credentials.merge(
            username=username, password=password, realm=realm,
        )
        if not actions:
            return self.protected()

        if actions == (ALL,):
            names = self.only()
        else:
            names = frozenset(actions)
            self._check_known(names)
            disabled = names - self.only()
            if disabled:
                raise ProtectedActionFault(disabled)
        self.options.protect = names
        return names

    def unprotect(self, *actions: str) -> FrozenSet[str]:
        """Stop protecting ``actions``; with none, protect nothing."""
        if not actions:
            self.options.protect = frozenset()
        else:
            names = frozenset(actions)
            self._check_known(names)
            self.options.protect = self.options.protect - names
        return self.protected()

    def credentials(self) -> Credentials:
        return self.options.credentials

    def finder(self) -> Callable[..., Any]:
        return self.options.finder

    def set_finder(self, fn: Callable[..., Any]) -> Callable[..., Any]:
        self.options.finder = fn
        return fn

    def record(self) -> Callable[..., Any]:
        return self.options.record

    def set_record(self, fn: Callable[..., Any]) -> Callable[..., Any]:
        self.options.record = fn
        return fn

    def authenticator(self) -> Callable[..., Any]:
        return self.options.authenticator or self._default_authenticator

    def set_authenticator(self, fn: Callable[..., Any]) -> Callable[..., Any]:
        self.options.authenticator = fn
        return fn

    def prefix(self) -> str:
        """Path prefix; defaults to the pluralised model name."""
        if self.options.prefix is None:
            self.options.prefix = f"/{self.model.plural}"
        return self.options.prefix

    def set_prefix(self, value: str) -> str:
        if value and not value.startswith("/"):
            value = "/" + value
        self.options.prefix = value
        return value

    def formats(self) -> Dict[str, BaseRenderer]:
        return dict(self.options.formats)

    def set_format(
        self,
        name: str,
        serializer: Union[BaseRenderer, Callable[[Any], Any]],
        media_type: Optional[str] = None,
    ) -> BaseRenderer:
        """Register a serializer for ``name`` (used for ``/posts.<name>``)."""
        if isinstance(serializer, BaseRenderer):
            renderer = serializer
        else:
            builtin = BUILTIN_RENDERERS.get(name)
            renderer = CallableRenderer(
                name, serializer,
                media_type or (builtin.media_type if builtin else "application/octet-stream"),
            )
        self.options.formats[name] = renderer
        return renderer

    @property
    def parent(self) -> Optional["Maker"]:
        return self.options.parent

    # ========================================================================
    # Nesting & paths
    # ========================================================================

    def parents(self) -> List["Maker"]:
        """Ancestors, nearest first. Cached on first call."""
        if self._parents is None:
            parent = self.parent
            self._parents = [parent] + parent.parents() if parent else []
        return self._parents

    def mount(self, klass: type, **overrides: Any) -> "Maker":
        """Build a maker nested under this one."""
        child = Maker(klass, registry=self.registry, settings=self.settings, parent=self, **overrides)
        self.children.append(child)
        return child

    def walk(self) -> Iterator["Maker"]:
        """This maker followed by every descendant, depth first."""
        yield self
        for child in self.children:
            yield from child.walk()

    def resource_path(self, *args: Any, **params: Any) -> str:
        return self.resource.path(*args, **params)

    def generate_routes(self, host: RouteHost) -> List[RouteBinding]:
        """Register every enabled action of this maker (and its children) with ``host``."""
        return Router(self).generate(host)

    def _check_known(self, names: Iterable[str]) -> None:
        unknown = [n for n in names if n not in self.registry]
        if unknown:
            raise UnknownActionFault(unknown)

    def __repr__(self) -> str:
        return f"Maker({self.model.name}, prefix={self.resource.prefix()!r})"
