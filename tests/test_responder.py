"""
Responder tests.

Format selection, renderers, conditional GET and descriptor defaults.
"""

import json

import pytest
import yaml

from resthat.faults import NotAcceptableFault
from resthat.maker import Maker
from resthat.responder import (
    NATURAL,
    ActionResponse,
    JSONRenderer,
    PlainTextRenderer,
    XMLRenderer,
    YAMLRenderer,
    _accepted_media,
    default_descriptors,
    last_modified,
    redirect_to_collection,
    redirect_to_record,
    to_plain,
)
from resthat.settings import HatSettings

from tests.conftest import Post, make_request


class Report:
    def __init__(self):
        self.name = "q1"

    def to_csv(self):
        return "name\nq1"


@pytest.fixture
def maker(registry):
    return Maker(Post, registry=registry)


# ============================================================================
# Renderers
# ============================================================================

class TestRenderers:

    def test_to_plain(self, post):
        plain = to_plain({"post": post, "tags": ("a", "b")})
        assert plain["post"]["title"] == "Hello"
        assert plain["post"]["updated_at"] == "2024-01-01T00:00:00+00:00"
        assert plain["tags"] == ["a", "b"]

    def test_json(self):
        assert json.loads(JSONRenderer().render({"a": 1})) == {"a": 1}

    def test_xml(self):
        out = XMLRenderer().render({"title": "a < b", "tags": ["x"], "1st": None})
        assert out.startswith('<?xml version="1.0" encoding="UTF-8"?>')
        assert "<title>a &lt; b</title>" in out
        assert "<item>" in out
        assert "<_1st />" in out

    def test_yaml(self):
        assert yaml.safe_load(YAMLRenderer().render({"a": [1, 2]})) == {"a": [1, 2]}

    def test_text(self):
        assert PlainTextRenderer().render("hi") == "hi"
        assert json.loads(PlainTextRenderer().render({"a": 1})) == {"a": 1}

    def test_accepted_media(self):
        assert _accepted_media("text/html, application/json;q=0.9, */*;q=0.1") == [
            "text/html", "application/json",
        ]
        assert _accepted_media("text/html;q=0.5, application/json") == [
            "application/json", "text/html",
        ]
        assert _accepted_media("") == []


# ============================================================================
# Format selection
# ============================================================================

class TestSelectFormat:

    def test_none_by_default(self, maker):
        assert maker.responder.select_format("index", make_request()) is None

    def test_request_parameter(self, maker):
        assert maker.responder.select_format("index", make_request(params={"format": "xml"})) == "xml"

    def test_descriptor_beats_request(self, maker):
        maker.after("index").format = "yaml"
        request = make_request(params={"format": "xml"})
        assert maker.responder.select_format("index", request) == "yaml"

    def test_default_format_setting(self, registry):
        maker = Maker(Post, registry=registry, settings=HatSettings(default_format="json"))
        assert maker.responder.select_format("index", make_request()) == "json"

    def test_accept_header(self, maker):
        request = make_request(headers={"Accept": "text/html, application/x-yaml;q=0.8"})
        assert maker.responder.select_format("index", request) == "yaml"

    def test_accept_ignores_wildcards_and_q0(self, maker):
        request = make_request(headers={"Accept": "*/*, application/json;q=0"})
        assert maker.responder.select_format("index", request) is None

    def test_accept_custom_format(self, maker):
        maker.set_format("csv", lambda data: "", media_type="text/csv")
        request = make_request(headers={"Accept": "text/csv"})
        assert maker.responder.select_format("index", request) == "csv"


class TestRendererFor:

    def test_custom_overrides_builtin(self, maker):
        renderer = maker.set_format("json", lambda data: "custom")
        assert maker.responder.renderer_for("json", None) is renderer

    def test_to_format_method(self, maker):
        renderer = maker.responder.renderer_for("csv", Report())
        assert renderer.render(Report()) == "name\nq1"

    def test_unknown_format(self, maker):
        with pytest.raises(NotAcceptableFault) as exc:
            maker.responder.renderer_for("pdf", object())
        assert exc.value.status == 406
        assert "json" in exc.value.metadata["available"]

    def test_format_must_be_a_plain_token(self, maker):
        class Odd:
            def to_(self):
                return ""

        with pytest.raises(NotAcceptableFault):
            maker.responder.renderer_for("", Odd())
        with pytest.raises(NotAcceptableFault):
            maker.responder.renderer_for("c-sv", Report())


# ============================================================================
# Serialization & conditional GET
# ============================================================================

class TestSerialize:

    def test_etag_and_last_modified(self, maker, post):
        response = maker.responder.serialize("json", make_request(), post, 200, cache=True)
        assert response.headers["etag"] == maker.responder.etag(response.body)
        assert response.headers["last-modified"] == "Mon, 01 Jan 2024 00:00:00 GMT"

    def test_if_none_match(self, maker, post):
        first = maker.responder.serialize("json", make_request(), post, 200, cache=True)
        request = make_request(headers={"If-None-Match": f'"other", {first.headers["etag"]}'})
        second = maker.responder.serialize("json", request, post, 200, cache=True)
        assert second.status == 304
        assert second.body == b""
        assert second.headers["etag"] == first.headers["etag"]

    def test_no_cache_headers_for_post(self, maker, post):
        response = maker.responder.serialize("json", make_request("POST"), post, 201, cache=True)
        assert "etag" not in response.headers

    def test_no_cache_headers_when_disabled(self, maker, post):
        response = maker.responder.serialize("json", make_request(), post, 422, cache=False)
        assert "etag" not in response.headers
        assert response.status == 422

    def test_to_format_method_must_return_text(self, maker):
        class Widget:
            def to_dict(self):
                return {"id": 1}

        with pytest.raises(NotAcceptableFault) as exc:
            maker.responder.serialize("dict", make_request(), Widget(), 200, cache=True)
        assert exc.value.status == 406

    def test_last_modified_collection(self, post):
        newer = Post.create(title="Newer")
        newer.updated_at = newer.updated_at.replace(year=2025)
        assert last_modified([post, newer]).year == 2025
        assert last_modified([]) is None
        assert last_modified(object()) is None

    def test_naive_timestamp_treated_as_utc(self, post):
        post.updated_at = post.updated_at.replace(tzinfo=None)
        assert last_modified(post).utcoffset().total_seconds() == 0


# ============================================================================
# Descriptors
# ============================================================================

class TestDescriptors:

    def test_defaults(self):
        defaults = default_descriptors()
        assert defaults["index"] == ActionResponse()
        assert defaults["create"].status == 201
        assert defaults["create"].success is redirect_to_record
        assert defaults["update"].success is redirect_to_record
        assert defaults["destroy"].success is redirect_to_collection
        assert defaults["new"].failure is redirect_to_collection

    def test_custom_actions_start_natural(self):
        descriptor = default_descriptors()["publish"]
        assert descriptor.success is NATURAL
        assert descriptor.failure is NATURAL

    def test_descriptors_per_maker(self, registry):
        a = Maker(Post, registry=registry)
        b = Maker(Post, registry=registry)
        a.after("show").format = "json"
        assert b.responder.defaults["show"].format is None

    def test_mutator_status_and_hooks(self, maker):
        on = maker.after("show")
        on.status = 203

        @on.failure
        def failed(responder, request, data):
            return "failed"

        assert maker.responder.defaults["show"].status == 203
        assert maker.responder.defaults["show"].failure is failed

    @pytest.mark.asyncio
    async def test_async_hook(self, maker, post):
        async def hook(responder, request, data):
            return {"id": data.id}

        maker.after("show").success(hook)
        assert await maker.responder.success("show", make_request(), post) == {"id": 1}
