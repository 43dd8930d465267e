"""
resthat - declarative REST resource controllers.

Declare a resource once and get the seven standard actions (index, new,
create, show, edit, update, destroy), nesting under parent resources, basic
auth on chosen actions, output formats and request logging.

    from resthat import HatApp

    app = HatApp()
    posts = app.mount(Post, protect=["create", "update", "destroy"])
    posts.mount(Comment)
"""

__version__ = "0.1.0"

from .actions import ActionDefinition, ActionRegistry, action, registry
from . import default_actions
from .faults import (
    ActionNotFoundFault,
    ConfigFault,
    Fault,
    FaultDomain,
    HTTPFault,
    NotAcceptableFault,
    ProtectedActionFault,
    RecordNotFoundFault,
    UnauthorizedFault,
    UnknownActionFault,
    fault_response,
)
from .options import ALL, Credentials, MakerOptions
from .request import HatRequest
from .response import HatResponse
from .responder import ActionResponse, BaseRenderer, Responder, ResponseMutator
from .auth import hash_password
from .settings import HatSettings
from .maker import Maker, MakerContext
from .router import RouteBinding, Router
from .app import HatApp, serve

__all__ = [
    "__version__",
    "ActionDefinition",
    "ActionRegistry",
    "action",
    "registry",
    "default_actions",
    "Fault",
    "FaultDomain",
    "ConfigFault",
    "UnknownActionFault",
    "ProtectedActionFault",
    "ActionNotFoundFault",
    "RecordNotFoundFault",
    "UnauthorizedFault",
    "NotAcceptableFault",
    "HTTPFault",
    "fault_response",
    "ALL",
    "Credentials",
    "MakerOptions",
    "HatRequest",
    "HatResponse",
    "ActionResponse",
    "BaseRenderer",
    "Responder",
    "ResponseMutator",
    "hash_password",
    "HatSettings",
    "Maker",
    "MakerContext",
    "RouteBinding",
    "Router",
    "HatApp",
    "serve",
]
