"""
Responder - per-action response shaping and format selection.

Every action has an ``ActionResponse`` descriptor. When a request names an
output format (``/posts.json``, ``?format=xml``, an ``Accept`` header, or a
format forced on the descriptor) the result is serialized; otherwise the
descriptor's success/failure hook decides, and the default hook hands back
the action's natural result untouched.

Customization happens at configuration time through ``Maker.after``::

    with maker.after("create") as on:
        on.success(lambda responder, request, record: record)
        on.format = "json"
"""

from __future__ import annotations

import hashlib
import json
import re
import xml.etree.ElementTree as ET
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Dict,
    Iterable,
    List,
    Optional,
    Tuple,
    Union,
)

import yaml

from .faults import NotAcceptableFault, RecordNotFoundFault
from .response import HatResponse
from .utils import call

if TYPE_CHECKING:
    from .maker import Maker
    from .request import HatRequest


Hook = Callable[["Responder", "HatRequest", Any], Any]


# ═══════════════════════════════════════════════════════════════════════════
#  Renderers
# ═══════════════════════════════════════════════════════════════════════════

def to_plain(data: Any) -> Any:
    """Convert records and containers into JSON-compatible values."""
    if isinstance(data, (str, int, float, bool)) or data is None:
        return data
    if isinstance(data, dict):
        return {str(k): to_plain(v) for k, v in data.items()}
    if isinstance(data, (list, tuple, set, frozenset)):
        return [to_plain(v) for v in data]
    if hasattr(data, "isoformat"):
        return data.isoformat()
    if hasattr(data, "to_dict"):
        return to_plain(data.to_dict())
    if hasattr(data, "__dict__"):
        return {k: to_plain(v) for k, v in vars(data).items() if not k.startswith("_")}
    return str(data)


class BaseRenderer:
    """
    Abstract renderer.

    Subclass and set ``media_type``, ``format_suffix``, and implement
    ``render()``.
    """

    media_type: str = "application/octet-stream"
    format_suffix: str = ""
    charset: Optional[str] = "utf-8"

    def render(self, data: Any) -> Union[str, bytes]:
        raise NotImplementedError


class JSONRenderer(BaseRenderer):
    media_type = "application/json"
    format_suffix = "json"

    def __init__(self, *, indent: Optional[int] = None):
        self.indent = indent

    def render(self, data: Any) -> str:
        return json.dumps(to_plain(data), indent=self.indent, ensure_ascii=False)


class XMLRenderer(BaseRenderer):
    """
    Render data as XML.

    Mappings become child elements, sequences become repeated ``item_tag``
    elements under ``root_tag``.
    """

    media_type = "application/xml"
    format_suffix = "xml"

    def __init__(self, *, root_tag: str = "response", item_tag: str = "item"):
        self.root_tag = root_tag
        self.item_tag = item_tag

    def render(self, data: Any) -> str:
        root = ET.Element(self.root_tag)
        self._fill(root, to_plain(data))
        return '<?xml version="1.0" encoding="UTF-8"?>\n' + ET.tostring(root, encoding="unicode")

    def _fill(self, element: ET.Element, value: Any) -> None:
        if isinstance(value, dict):
            for key, child in value.items():
                self._fill(ET.SubElement(element, _xml_tag(key)), child)
        elif isinstance(value, list):
            for child in value:
                self._fill(ET.SubElement(element, self.item_tag), child)
        elif value is not None:
            element.text = str(value)


def _xml_tag(name: str) -> str:
    tag = re.sub(r"[^A-Za-z0-9_.-]", "_", name)
    return tag if tag and not tag[0].isdigit() else "_" + tag


class YAMLRenderer(BaseRenderer):
    media_type = "application/x-yaml"
    format_suffix = "yaml"

    def render(self, data: Any) -> str:
        return yaml.safe_dump(to_plain(data), default_flow_style=False, allow_unicode=True)


class PlainTextRenderer(BaseRenderer):
    media_type = "text/plain"
    format_suffix = "text"

    def render(self, data: Any) -> str:
        if isinstance(data, str):
            return data
        return json.dumps(to_plain(data), indent=2)


class CallableRenderer(BaseRenderer):
    """Wraps a user-supplied ``(data) -> str`` serializer."""

    def __init__(self, format_suffix: str, func: Callable[[Any], Union[str, bytes]],
                 media_type: str = "application/octet-stream"):
        self.format_suffix = format_suffix
        self.func = func
        self.media_type = media_type

    def render(self, data: Any) -> Union[str, bytes]:
        return self.func(data)


class MethodRenderer(BaseRenderer):
    """Serializes through the data's own ``to_<format>()`` method."""

    def __init__(self, format_suffix: str, media_type: str = "application/octet-stream"):
        self.format_suffix = format_suffix
        self.media_type = media_type

    def render(self, data: Any) -> Union[str, bytes]:
        return getattr(data, f"to_{self.format_suffix}")()


# Format names usable as `to_<format>` method suffixes
FORMAT_TOKEN = re.compile(r"[A-Za-z0-9]+")

BUILTIN_RENDERERS: Dict[str, BaseRenderer] = {
    r.format_suffix: r
    for r in (JSONRenderer(), XMLRenderer(), YAMLRenderer(), PlainTextRenderer())
}


# ═══════════════════════════════════════════════════════════════════════════
#  Accept header parser
# ═══════════════════════════════════════════════════════════════════════════

def _accepted_media(header: str) -> List[str]:
    """
    Concrete media types from an ``Accept`` header, most preferred first.

    Wildcards and ``q=0`` entries are dropped::

        _accepted_media("text/html;q=0.5, application/json, */*;q=0.1")
        # → ["application/json", "text/html"]
    """
    ranked: List[Tuple[float, str]] = []
    for part in (header or "").split(","):
        media, *attrs = [piece.strip() for piece in part.split(";")]
        if not media or "*" in media:
            continue
        quality = 1.0
        for attr in attrs:
            name, _, value = attr.partition("=")
            if name.strip() == "q":
                try:
                    quality = float(value)
                except ValueError:
                    pass
        if quality > 0:
            ranked.append((quality, media))
    ranked.sort(key=lambda entry: entry[0], reverse=True)
    return [media for _, media in ranked]


# ═══════════════════════════════════════════════════════════════════════════
#  Descriptors
# ═══════════════════════════════════════════════════════════════════════════

def natural(responder: "Responder", request: "HatRequest", data: Any) -> Any:
    """Use the action's natural result."""
    return data


NATURAL: Hook = natural


def redirect_to_record(responder: "Responder", request: "HatRequest", data: Any) -> HatResponse:
    return HatResponse.redirect(responder.record_path(request, data))


def redirect_to_collection(responder: "Responder", request: "HatRequest", data: Any) -> HatResponse:
    return HatResponse.redirect(responder.collection_path(request))


@dataclass
class ActionResponse:
    """
    How one action's results are shaped.

    Attributes:
        format: Format forced for every request to this action, or None
        status: Status for serialized success
        failure_status: Status for serialized failure
        success: Hook for natural (unserialized) success
        failure: Hook for natural (unserialized) failure
    """

    format: Optional[str] = None
    status: int = 200
    failure_status: int = 422
    success: Hook = NATURAL
    failure: Hook = NATURAL


def default_descriptors() -> Dict[str, ActionResponse]:
    """Descriptors for the standard actions; anything else starts natural."""
    defaults: Dict[str, ActionResponse] = defaultdict(ActionResponse)
    defaults.update({
        "index": ActionResponse(),
        "show": ActionResponse(),
        "new": ActionResponse(failure=redirect_to_collection),
        "edit": ActionResponse(),
        "create": ActionResponse(status=201, success=redirect_to_record),
        "update": ActionResponse(success=redirect_to_record),
        "destroy": ActionResponse(success=redirect_to_collection),
    })
    return defaults


class ResponseMutator:
    """
    Mutable handle on exactly one action's descriptor.

    Usable directly or as a context manager.
    """

    def __init__(self, descriptor: ActionResponse):
        self._descriptor = descriptor

    @property
    def format(self) -> Optional[str]:
        return self._descriptor.format

    @format.setter
    def format(self, value: Optional[str]) -> None:
        self._descriptor.format = value

    @property
    def status(self) -> int:
        return self._descriptor.status

    @status.setter
    def status(self, value: int) -> None:
        self._descriptor.status = value

    def success(self, hook: Hook) -> Hook:
        self._descriptor.success = hook
        return hook

    def failure(self, hook: Hook) -> Hook:
        self._descriptor.failure = hook
        return hook

    def __enter__(self) -> "ResponseMutator":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        return None


# ═══════════════════════════════════════════════════════════════════════════
#  Responder
# ═══════════════════════════════════════════════════════════════════════════

class Responder:
    """
    Decides how an action's result is handed back to the host.

    Resolution order for the output format:
    1. Format forced on the action's descriptor
    2. ``format`` request parameter (``/posts/1.json``)
    3. ``default_format`` setting
    4. ``Accept`` header, matched against available serializers
    5. None: the descriptor hook runs on the natural result
    """

    def __init__(self, maker: "Maker"):
        self.maker = maker
        self.defaults: Dict[str, ActionResponse] = default_descriptors()

    # -- format selection ---------------------------------------------------

    def renderers(self) -> Dict[str, BaseRenderer]:
        available = dict(BUILTIN_RENDERERS)
        available.update(self.maker.formats())
        return available

    def select_format(self, action: str, request: "HatRequest") -> Optional[str]:
        explicit = (
            self.defaults[action].format
            or request.format
            or self.maker.settings.default_format
        )
        if explicit:
            return explicit

        renderers = self.renderers()
        for media in _accepted_media(request.header("accept", "")):
            for name, renderer in renderers.items():
                if renderer.media_type == media:
                    return name
        return None

    def renderer_for(self, format: str, data: Any) -> BaseRenderer:
        renderers = self.renderers()
        if format in renderers:
            return renderers[format]
        if (isinstance(format, str) and FORMAT_TOKEN.fullmatch(format)
                and callable(getattr(data, f"to_{format}", None))):
            return MethodRenderer(format)
        raise NotAcceptableFault(format, renderers)

    # -- outcomes -----------------------------------------------------------

    async def success(self, action: str, request: "HatRequest", data: Any) -> Any:
        descriptor = self.defaults[action]
        format = self.select_format(action, request)
        if format is None:
            return await call(descriptor.success, self, request, data)
        return self.serialize(format, request, data, descriptor.status, cache=True)

    async def failure(self, action: str, request: "HatRequest", data: Any) -> Any:
        descriptor = self.defaults[action]
        format = self.select_format(action, request)
        if format is None:
            return await call(descriptor.failure, self, request, data)
        errors = getattr(data, "errors", None)
        return self.serialize(
            format, request, errors if errors is not None else data,
            descriptor.failure_status, cache=False,
        )

    def not_found(self, request: "HatRequest"):
        raise RecordNotFoundFault(self.maker.model.name)

    def serialize(self, format: str, request: "HatRequest", data: Any,
                  status: int, cache: bool) -> HatResponse:
        renderer = self.renderer_for(format, data)
        body = renderer.render(data)
        if not isinstance(body, (str, bytes)):
            raise NotAcceptableFault(format, self.renderers())
        response = HatResponse(body, status=status, media_type=renderer.media_type,
                               charset=renderer.charset)
        if cache and request.method in ("GET", "HEAD"):
            etag = self.etag(body)
            if etag in _etag_list(request.header("if-none-match", "")):
                return HatResponse.not_modified(etag)
            response.headers["etag"] = etag
            modified = last_modified(data)
            if modified is not None:
                response.headers["last-modified"] = format_datetime(modified, usegmt=True)
        return response

    @staticmethod
    def etag(body: Union[str, bytes]) -> str:
        raw = body.encode("utf-8") if isinstance(body, str) else body
        return f'"{hashlib.sha1(raw).hexdigest()}"'

    # -- paths used by redirect hooks ---------------------------------------

    def scope_params(self, request: "HatRequest") -> Dict[str, Any]:
        """Ancestor id parameters (``post_id`` ...) present on the request."""
        names = [f"{p.model.singular}_id" for p in self.maker.parents()]
        return {n: request.params[n] for n in names if n in request.params}

    def record_path(self, request: "HatRequest", record: Any) -> str:
        return self.maker.resource_path("/:id", record, **self.scope_params(request))

    def collection_path(self, request: "HatRequest") -> str:
        return self.maker.resource_path("/", **self.scope_params(request))


def _etag_list(header: str) -> Iterable[str]:
    return [tag.strip() for tag in header.split(",") if tag.strip()]


def last_modified(data: Any) -> Optional[datetime]:
    """``updated_at`` of a record, or the newest one in a collection."""
    if isinstance(data, (list, tuple)):
        stamps = [s for s in (last_modified(item) for item in data) if s is not None]
        return max(stamps) if stamps else None
    stamp = getattr(data, "updated_at", None)
    if not isinstance(stamp, datetime):
        return None
    if stamp.tzinfo is None:
        stamp = stamp.replace(tzinfo=timezone.utc)
    return stamp.astimezone(timezone.utc)
