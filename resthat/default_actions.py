"""
The standard REST actions.

Installed on the process-wide registry when ``resthat`` is imported. Order
matters to first-match hosts: ``new`` (``/new``) precedes ``show`` (``/:id``).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .actions import ActionRegistry, registry
from .utils import call

if TYPE_CHECKING:
    from .maker import MakerContext


async def index(ctx: "MakerContext") -> Any:
    records = await ctx.model.all(ctx.params)
    return await ctx.responder.success("index", ctx.request, records)


async def new(ctx: "MakerContext") -> Any:
    record = await ctx.model.new(ctx.params)
    return await ctx.responder.success("new", ctx.request, record)


async def create(ctx: "MakerContext") -> Any:
    record = await ctx.model.new(ctx.params)
    if await call(record.save):
        return await ctx.responder.success("create", ctx.request, record)
    return await ctx.responder.failure("create", ctx.request, record)


async def show(ctx: "MakerContext") -> Any:
    record = await ctx.model.find(ctx.params)
    if record is None:
        ctx.responder.not_found(ctx.request)
    return await ctx.responder.success("show", ctx.request, record)


async def edit(ctx: "MakerContext") -> Any:
    record = await ctx.model.find(ctx.params)
    if record is None:
        ctx.responder.not_found(ctx.request)
    return await ctx.responder.success("edit", ctx.request, record)


async def update(ctx: "MakerContext") -> Any:
    record = await ctx.model.update(ctx.params)
    if record is None:
        ctx.responder.not_found(ctx.request)
    if await call(record.save):
        return await ctx.responder.success("update", ctx.request, record)
    return await ctx.responder.failure("update", ctx.request, record)


async def destroy(ctx: "MakerContext") -> Any:
    record = await ctx.model.find(ctx.params)
    if record is None:
        ctx.responder.not_found(ctx.request)
    await call(record.destroy)
    return await ctx.responder.success("destroy", ctx.request, record)


STANDARD_ACTIONS = (
    ("index", "/", "GET", index),
    ("new", "/new", "GET", new),
    ("create", "/", "POST", create),
    ("show", "/:id", "GET", show),
    ("edit", "/:id/edit", "GET", edit),
    ("update", "/:id", "PUT", update),
    ("destroy", "/:id", "DELETE", destroy),
)


def install(target: ActionRegistry) -> ActionRegistry:
    """Register the standard actions on ``target``."""
    for name, path, verb, handler in STANDARD_ACTIONS:
        target.register(name, path, verb=verb, handler=handler)
    return target


install(registry)
