"""
resthat faults - Core types and fault taxonomy.

Defines:
- Fault base class (structured fault objects carrying an HTTP status)
- FaultDomain (explicit fault domains)
- Severity levels
- Concrete faults raised by the registry, makers, guards and responders
- fault_response() for hosts that need a rendered error
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Iterable, Optional


class Severity(str, Enum):
    """
    Fault severity levels.

    Determines the logging level a host should use.
    """
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    FATAL = "fatal"


class FaultDomain:
    """
    Fault domains (taxonomy).

    Identifies the functional area where a fault occurred.
    """

    def __init__(self, name: str, description: str = ""):
        self.name = name
        self.value = name
        self.description = description

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"FaultDomain(name='{self.name}')"

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, FaultDomain):
            return self.name == other.name
        return str(self) == str(other)

    def __hash__(self) -> int:
        return hash(self.name)


FaultDomain.CONFIG = FaultDomain("config", "Maker configuration errors")
FaultDomain.REGISTRY = FaultDomain("registry", "Action registry errors")
FaultDomain.ROUTING = FaultDomain("routing", "Action and route resolution errors")
FaultDomain.SECURITY = FaultDomain("security", "Authentication errors")
FaultDomain.RESPONSE = FaultDomain("response", "Response shaping errors")
FaultDomain.HTTP = FaultDomain("http", "Request aborted by a handler")
FaultDomain.SYSTEM = FaultDomain("system", "Unhandled failures surfaced by a host")


DOMAIN_DEFAULTS = {
    FaultDomain.CONFIG: {"severity": Severity.FATAL, "status": 500},
    FaultDomain.REGISTRY: {"severity": Severity.FATAL, "status": 500},
    FaultDomain.ROUTING: {"severity": Severity.WARN, "status": 404},
    FaultDomain.SECURITY: {"severity": Severity.WARN, "status": 401},
    FaultDomain.RESPONSE: {"severity": Severity.WARN, "status": 406},
    FaultDomain.HTTP: {"severity": Severity.WARN, "status": 400},
    FaultDomain.SYSTEM: {"severity": Severity.ERROR, "status": 500},
}


class Fault(Exception):
    """
    Base fault class - structured, typed fault object.

    Attributes:
        code: Stable machine-readable identifier (e.g., "ACTION_NOT_FOUND")
        message: Human-readable summary
        domain: Fault domain (CONFIG, ROUTING, SECURITY, ...)
        severity: Fault severity
        status: HTTP status a host should answer with
        public: Whether the message is safe to expose to the client
        headers: Extra response headers a host should send
        metadata: Additional context data
    """

    def __init__(
        self,
        code: str,
        message: str,
        *,
        domain: FaultDomain,
        severity: Optional[Severity] = None,
        status: Optional[int] = None,
        public: bool = False,
        headers: Optional[dict[str, str]] = None,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.domain = domain

        defaults = DOMAIN_DEFAULTS.get(domain, {"severity": Severity.ERROR, "status": 500})
        self.severity = severity or defaults["severity"]
        self.status = status or defaults["status"]
        self.public = public
        self.headers = headers or {}
        self.metadata = metadata or {}

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(code={self.code!r}, domain={self.domain.value}, "
            f"status={self.status}, public={self.public})"
        )

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize fault to dictionary.

        Returns:
            Dictionary representation suitable for logging/serialization
        """
        return {
            "code": self.code,
            "message": self.message,
            "domain": self.domain.value,
            "severity": self.severity.value,
            "status": self.status,
            "public": self.public,
            "metadata": self.metadata,
        }


# ============================================================================
# CONFIG Faults
# ============================================================================

class ConfigFault(Fault):
    """Base class for maker configuration faults."""

    def __init__(self, code: str, message: str, *, metadata: Optional[dict[str, Any]] = None):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.CONFIG,
            metadata=metadata,
        )


class UnknownActionFault(ConfigFault):
    """An action name was given that the registry does not know."""

    def __init__(self, actions: Iterable[str]):
        names = sorted(actions)
        super().__init__(
            code="UNKNOWN_ACTION",
            message=f"Unknown action(s): {', '.join(names)}",
            metadata={"actions": names},
        )


class ProtectedActionFault(ConfigFault):
    """Protected actions must also be enabled."""

    def __init__(self, actions: Iterable[str]):
        names = sorted(actions)
        super().__init__(
            code="PROTECTED_NOT_ENABLED",
            message=f"Protected action(s) not enabled: {', '.join(names)}",
            metadata={"actions": names},
        )


class SettingsFault(ConfigFault):
    """Settings could not be loaded."""

    def __init__(self, key: str, reason: str):
        super().__init__(
            code="SETTINGS_INVALID",
            message=f"Invalid setting '{key}': {reason}",
            metadata={"key": key, "reason": reason},
        )


# ============================================================================
# REGISTRY Faults
# ============================================================================

class RegistryFault(Fault):
    """Base class for action registry faults."""

    def __init__(self, code: str, message: str, *, metadata: Optional[dict[str, Any]] = None):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.REGISTRY,
            metadata=metadata,
        )


class RegistryFrozenFault(RegistryFault):
    """Registration attempted after the registry was frozen."""

    def __init__(self, name: str):
        super().__init__(
            code="REGISTRY_FROZEN",
            message=f"Cannot register action '{name}': registry is frozen",
            metadata={"action": name},
        )


class InvalidActionFault(RegistryFault):
    """An action definition is malformed."""

    def __init__(self, name: str, reason: str):
        super().__init__(
            code="ACTION_INVALID",
            message=f"Invalid action '{name}': {reason}",
            metadata={"action": name, "reason": reason},
        )


# ============================================================================
# ROUTING Faults
# ============================================================================

class RoutingFault(Fault):
    """Base class for routing faults."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        status: int = 404,
        public: bool = True,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.ROUTING,
            status=status,
            public=public,
            metadata=metadata,
        )


class ActionNotFoundFault(RoutingFault):
    """The requested action is not enabled on this maker."""

    def __init__(self, action: str):
        super().__init__(
            code="ACTION_NOT_FOUND",
            message=f"Action not found: {action}",
            metadata={"action": action},
        )


class RouteNotFoundFault(RoutingFault):
    """No route matches the request."""

    def __init__(self, method: str, path: str):
        super().__init__(
            code="ROUTE_NOT_FOUND",
            message=f"Route not found: {method} {path}",
            metadata={"method": method, "path": path},
        )


class RecordNotFoundFault(RoutingFault):
    """The record (or its parent record) could not be found."""

    def __init__(self, model: str):
        super().__init__(
            code="RECORD_NOT_FOUND",
            message=f"{model} not found",
            metadata={"model": model},
        )


class PathParameterFault(RoutingFault):
    """A path placeholder could not be filled."""

    def __init__(self, pattern: str, missing: Iterable[str]):
        names = list(missing)
        super().__init__(
            code="PATH_PARAMETER_MISSING",
            message=f"Missing value(s) for {', '.join(names)} in '{pattern}'",
            status=500,
            public=False,
            metadata={"pattern": pattern, "missing": names},
        )


# ============================================================================
# SECURITY Faults
# ============================================================================

class UnauthorizedFault(Fault):
    """
    Authentication failed.

    The message is identical whether the username or the password was wrong.
    """

    def __init__(self, realm: str):
        super().__init__(
            code="UNAUTHORIZED",
            message="Not authorized",
            domain=FaultDomain.SECURITY,
            public=True,
            headers={"WWW-Authenticate": f'Basic realm="{realm}"'},
            metadata={"realm": realm},
        )


# ============================================================================
# RESPONSE Faults
# ============================================================================

class NotAcceptableFault(Fault):
    """The requested output format has no serializer."""

    def __init__(self, format: str, available: Iterable[str]):
        names = sorted(available)
        super().__init__(
            code="FORMAT_NOT_ACCEPTABLE",
            message=f"Format '{format}' is not available",
            domain=FaultDomain.RESPONSE,
            public=True,
            metadata={"format": format, "available": names},
        )


# ============================================================================
# HTTP Faults
# ============================================================================

class HTTPFault(Fault):
    """Raised by HatRequest.abort() to end a request with a given status."""

    def __init__(self, status: int, message: Optional[str] = None):
        super().__init__(
            code=f"HTTP_{status}",
            message=message or f"Request aborted with status {status}",
            domain=FaultDomain.HTTP,
            status=status,
            public=True,
        )


class InternalErrorFault(Fault):
    """An action failed with a non-fault exception."""

    def __init__(self, error: BaseException):
        super().__init__(
            code="INTERNAL_ERROR",
            message="Internal server error",
            domain=FaultDomain.SYSTEM,
            metadata={"exception": type(error).__name__},
        )


def fault_body(fault: Fault) -> dict[str, Any]:
    """Build the JSON error document for a fault."""
    body = {
        "error": {
            "code": fault.code,
            "message": fault.message if fault.public else "Internal server error",
            "domain": fault.domain.value,
            "severity": fault.severity.value,
        }
    }
    if fault.public and fault.metadata:
        body["error"]["metadata"] = fault.metadata
    return body


def fault_response(fault: Fault):
    """
    Map a fault to a ``HatResponse`` with the fault's status and headers.
    """
    from .response import HatResponse

    return HatResponse(
        json.dumps(fault_body(fault)),
        status=fault.status,
        headers=dict(fault.headers),
        media_type="application/json",
    )
