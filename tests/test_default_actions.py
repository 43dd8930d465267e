"""
Standard action tests.

Runs index/new/create/show/edit/update/destroy through Maker.handle for a
top-level and a nested resource, with natural and serialized results.
"""

import json

import pytest

from resthat.faults import RecordNotFoundFault
from resthat.maker import Maker
from resthat.response import HatResponse

from tests.conftest import Comment, Post, make_request


@pytest.fixture
def posts(registry):
    return Maker(Post, registry=registry)


@pytest.fixture
def comments(posts):
    return posts.mount(Comment)


class TestNaturalResults:

    @pytest.mark.asyncio
    async def test_index(self, posts, post):
        assert await posts.handle("index", make_request()) == [post]

    @pytest.mark.asyncio
    async def test_index_uses_finder(self, posts, post):
        Post.create(title="Other")
        posts.set_finder(lambda model, params: [p for p in model.all() if p.title == "Other"])
        result = await posts.handle("index", make_request())
        assert [p.title for p in result] == ["Other"]

    @pytest.mark.asyncio
    async def test_new_builds_unsaved_record(self, posts):
        record = await posts.handle("new", make_request(params={"post[title]": "Draft"}))
        assert isinstance(record, Post)
        assert record.id is None
        assert record.title == "Draft"
        assert Post.all() == []

    @pytest.mark.asyncio
    async def test_show(self, posts, post):
        assert await posts.handle("show", make_request(params={"id": str(post.id)})) is post

    @pytest.mark.asyncio
    async def test_show_uses_record_callback(self, posts, post):
        posts.set_record(lambda model, params: model.find_by_id(1) if params.get("id") == "first" else None)
        assert await posts.handle("show", make_request(params={"id": "first"})) is post

    @pytest.mark.asyncio
    async def test_show_missing(self, posts):
        with pytest.raises(RecordNotFoundFault) as exc:
            await posts.handle("show", make_request(params={"id": "99"}))
        assert exc.value.status == 404
        assert exc.value.message == "Post not found"

    @pytest.mark.asyncio
    async def test_edit(self, posts, post):
        assert await posts.handle("edit", make_request(params={"id": "1"})) is post

    @pytest.mark.asyncio
    async def test_create_redirects_to_record(self, posts):
        result = await posts.handle("create", make_request("POST", params={"post[title]": "Hi"}))
        assert isinstance(result, HatResponse)
        assert result.status == 303
        assert result.headers["location"] == "/posts/1"
        assert Post.find_by_id(1).title == "Hi"

    @pytest.mark.asyncio
    async def test_create_failure_returns_record(self, posts):
        result = await posts.handle("create", make_request("POST", params={}))
        assert isinstance(result, Post)
        assert result.errors == {"title": ["can't be blank"]}
        assert Post.all() == []

    @pytest.mark.asyncio
    async def test_update_redirects_to_record(self, posts, post):
        params = {"id": "1", "post[title]": "Changed"}
        result = await posts.handle("update", make_request("PUT", params=params))
        assert result.headers["location"] == "/posts/1"
        assert post.title == "Changed"

    @pytest.mark.asyncio
    async def test_update_missing(self, posts):
        with pytest.raises(RecordNotFoundFault):
            await posts.handle("update", make_request("PUT", params={"id": "7"}))

    @pytest.mark.asyncio
    async def test_destroy_redirects_to_collection(self, posts, post):
        result = await posts.handle("destroy", make_request("DELETE", params={"id": "1"}))
        assert result.status == 303
        assert result.headers["location"] == "/posts"
        assert Post.all() == []

    @pytest.mark.asyncio
    async def test_success_hook_override(self, posts):
        with posts.after("create") as on:
            on.success(lambda responder, request, record: {"created": record.id})
        result = await posts.handle("create", make_request("POST", params={"post[title]": "Hi"}))
        assert result == {"created": 1}


class TestSerializedResults:

    @pytest.mark.asyncio
    async def test_index_json(self, posts, post):
        response = await posts.handle("index", make_request(params={"format": "json"}))
        assert response.status == 200
        assert response.headers["content-type"] == "application/json; charset=utf-8"
        body = json.loads(response.body)
        assert body[0]["title"] == "Hello"
        assert "etag" in response.headers
        assert response.headers["last-modified"] == "Mon, 01 Jan 2024 00:00:00 GMT"

    @pytest.mark.asyncio
    async def test_create_json(self, posts):
        params = {"format": "json", "post[title]": "Hi"}
        response = await posts.handle("create", make_request("POST", params=params))
        assert response.status == 201
        assert json.loads(response.body)["id"] == 1
        assert "etag" not in response.headers

    @pytest.mark.asyncio
    async def test_create_failure_json(self, posts):
        response = await posts.handle("create", make_request("POST", params={"format": "json"}))
        assert response.status == 422
        assert json.loads(response.body) == {"title": ["can't be blank"]}

    @pytest.mark.asyncio
    async def test_forced_format(self, posts, post):
        posts.after("show").format = "json"
        response = await posts.handle("show", make_request(params={"id": "1"}))
        assert json.loads(response.body)["id"] == 1


class TestNestedResource:

    @pytest.mark.asyncio
    async def test_index_scoped_to_parent(self, comments, post):
        other = Post.create(title="Other")
        Comment(body="mine", post_id=post.id).save()
        Comment(body="theirs", post_id=other.id).save()
        result = await comments.handle("index", make_request(params={"post_id": "1"}))
        assert [c.body for c in result] == ["mine"]

    @pytest.mark.asyncio
    async def test_create_under_parent(self, comments, post):
        params = {"post_id": "1", "comment[body]": "Nice"}
        result = await comments.handle("create", make_request("POST", params=params))
        assert result.headers["location"] == "/posts/1/comments/1"
        assert Comment.find_by_id(1).post_id == post.id

    @pytest.mark.asyncio
    async def test_show_of_other_parent(self, comments, post):
        other = Post.create(title="Other")
        Comment(body="theirs", post_id=other.id).save()
        with pytest.raises(RecordNotFoundFault) as exc:
            await comments.handle("show", make_request(params={"post_id": "1", "id": "1"}))
        assert exc.value.metadata["model"] == "Comment"

    @pytest.mark.asyncio
    async def test_missing_parent(self, comments):
        with pytest.raises(RecordNotFoundFault) as exc:
            await comments.handle("index", make_request(params={"post_id": "42"}))
        assert exc.value.metadata["model"] == "Post"

    @pytest.mark.asyncio
    async def test_destroy_redirects_to_nested_collection(self, comments, post):
        Comment(body="bye", post_id=post.id).save()
        result = await comments.handle("destroy", make_request("DELETE", params={"post_id": "1", "id": "1"}))
        assert result.headers["location"] == "/posts/1/comments"
        assert Comment.all() == []
