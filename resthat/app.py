"""
HatApp - reference host for makers.

Implements the host side of the router contract: first-match pattern routes
with ``:name`` parameters, fault-to-response mapping, and an ASGI 3 entry
point so mounted makers can be served directly.

Example:
    app = HatApp()
    posts = app.mount(Post, protect=["create"])
    posts.mount(Comment)

    serve(app, port=8000)
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple
from urllib.parse import parse_qsl

import uvicorn

from .actions import ActionRegistry
from .faults import Fault, HTTPFault, InternalErrorFault, RouteNotFoundFault, fault_response
from .maker import Maker
from .request import HatRequest
from .resource import PLACEHOLDER
from .responder import to_plain
from .response import HatResponse
from .router import Endpoint, RouteBinding
from .settings import HatSettings


logger = logging.getLogger("resthat.app")


def compile_pattern(path: str) -> re.Pattern:
    """``/posts/:id.:format`` → regex with named groups."""
    parts: List[str] = []
    last = 0
    for m in PLACEHOLDER.finditer(path):
        parts.append(re.escape(path[last:m.start()]))
        parts.append(f"(?P<{m.group(1)}>[^/]+)")
        last = m.end()
    parts.append(re.escape(path[last:]))
    return re.compile("^" + "".join(parts) + "$")


@dataclass
class Route:
    verb: str
    path: str
    regex: re.Pattern
    endpoint: Endpoint


class HatApp:
    """
    Routes requests to mounted makers.

    Args:
        settings: Defaults for every mounted maker; loaded from the
            environment when omitted
        registry: Action registry shared by mounted makers
    """

    def __init__(
        self,
        settings: Optional[HatSettings] = None,
        registry: Optional[ActionRegistry] = None,
    ):
        self.settings = settings if settings is not None else HatSettings.load()
        self.registry = registry
        self.makers: List[Maker] = []
        self.routes: List[Route] = []
        self._generated = False

    # ========================================================================
    # Setup
    # ========================================================================

    def mount(self, klass: type, **overrides: Any) -> Maker:
        """Create a top-level maker served by this app."""
        maker = Maker(klass, registry=self.registry, settings=self.settings, **overrides)
        self.makers.append(maker)
        self._generated = False
        return maker

    def add_route(self, verb: str, path: str, endpoint: Endpoint) -> None:
        self.routes.append(Route(verb.upper(), path, compile_pattern(path), endpoint))

    def generate(self) -> List[RouteBinding]:
        """(Re)bind every mounted maker, nested makers included."""
        self.routes = []
        bindings: List[RouteBinding] = []
        for maker in self.makers:
            bindings.extend(maker.generate_routes(self))
        self._generated = True
        logger.info("Registered %d routes for %d makers", len(bindings), len(self.makers))
        return bindings

    # ========================================================================
    # Dispatch
    # ========================================================================

    def match(self, method: str, path: str) -> Optional[Tuple[Route, Dict[str, str]]]:
        """First route (in registration order) matching ``method`` and ``path``."""
        if not self._generated:
            self.generate()
        for route in self.routes:
            if route.verb != method:
                continue
            m = route.regex.match(path)
            if m:
                return route, m.groupdict()
        return None

    async def dispatch(
        self,
        method: str,
        path: str,
        query: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
        body: Optional[Mapping[str, Any]] = None,
    ) -> HatResponse:
        """
        Resolve and run one request.

        A ``_method`` body parameter on POST overrides the verb, so HTML forms
        can reach update and destroy.
        """
        params: Dict[str, Any] = {**(query or {}), **(body or {})}
        method = method.upper()
        if method == "POST" and "_method" in params:
            method = str(params.pop("_method")).upper()

        found = self.match(method, path)
        if found is None:
            return fault_response(RouteNotFoundFault(method, path))

        route, path_params = found
        params.update(path_params)
        request = HatRequest(method=method, path=path, params=params, headers=dict(headers or {}))
        try:
            result = await route.endpoint(request)
        except Fault as fault:
            logger.info("%s %s -> %s", method, path, fault)
            return fault_response(fault)
        except Exception as exc:
            logger.exception("Unhandled error in %s %s", method, path)
            return fault_response(InternalErrorFault(exc))
        return self.to_response(result)

    @staticmethod
    def to_response(result: Any) -> HatResponse:
        """Convert a natural action result into a response."""
        if isinstance(result, HatResponse):
            return result
        if result is None:
            return HatResponse(b"", status=204)
        if isinstance(result, bytes):
            return HatResponse(result, media_type="application/octet-stream", charset=None)
        if isinstance(result, str):
            return HatResponse(result, media_type="text/plain")
        return HatResponse(json.dumps(to_plain(result)), media_type="application/json")

    # ========================================================================
    # ASGI
    # ========================================================================

    async def __call__(self, scope: dict, receive, send) -> None:
        if scope["type"] == "lifespan":
            await self._lifespan(receive, send)
            return
        if scope["type"] != "http":
            raise RuntimeError(f"Unsupported ASGI scope type: {scope['type']}")

        headers = {
            name.decode("latin-1"): value.decode("latin-1")
            for name, value in scope.get("headers", [])
        }
        query = dict(parse_qsl(scope.get("query_string", b"").decode("latin-1"), keep_blank_values=True))
        raw = await self._read_body(receive)
        try:
            body = self._parse_body(raw, headers)
        except HTTPFault as fault:
            logger.info("%s %s -> %s", scope["method"], scope["path"], fault)
            response = fault_response(fault)
        else:
            response = await self.dispatch(scope["method"], scope["path"], query, headers, body)

        payload = response.body_bytes()
        response.headers.setdefault("content-length", str(len(payload)))

        await send({
            "type": "http.response.start",
            "status": response.status,
            "headers": [(k.encode("latin-1"), v.encode("latin-1")) for k, v in response.headers.items()],
        })
        await send({"type": "http.response.body", "body": payload})

    async def _lifespan(self, receive, send) -> None:
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                self.generate()
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                await send({"type": "lifespan.shutdown.complete"})
                return

    @staticmethod
    async def _read_body(receive) -> bytes:
        chunks = []
        while True:
            message = await receive()
            if message["type"] != "http.request":
                break
            chunks.append(message.get("body", b""))
            if not message.get("more_body", False):
                break
        return b"".join(chunks)

    @staticmethod
    def _parse_body(raw: bytes, headers: Mapping[str, str]) -> Dict[str, Any]:
        """
        Form or JSON body parameters.

        Raises:
            HTTPFault: 400 when the body cannot be decoded
        """
        if not raw:
            return {}
        content_type = ""
        for name, value in headers.items():
            if name.lower() == "content-type":
                content_type = value.split(";")[0].strip().lower()
        if content_type == "application/x-www-form-urlencoded":
            try:
                return dict(parse_qsl(raw.decode("utf-8"), keep_blank_values=True))
            except UnicodeDecodeError:
                raise HTTPFault(400, "Form body is not valid UTF-8") from None
        if content_type == "application/json":
            try:
                data = json.loads(raw)
            except ValueError:
                raise HTTPFault(400, "Malformed JSON body") from None
            return data if isinstance(data, dict) else {}
        return {}


def serve(
    app: HatApp,
    host: str = "127.0.0.1",
    port: int = 8000,
    log_level: Optional[str] = None,
) -> None:
    """Run ``app`` under uvicorn."""
    log_level = log_level or app.settings.log_level
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )
    app.generate()
    logger.info(f"Starting uvicorn server on {host}:{port}")
    uvicorn.run(app, host=host, port=port, log_level=log_level)
