"""
HatResponse - the shaped result a maker hands back to its host.

Natural results (whatever an action produced when no format applies) are
returned to the host unchanged; serialized results and redirects are
``HatResponse`` instances.
"""

from __future__ import annotations

from typing import Dict, Optional, Union


class HatResponse:
    """
    A status, headers and a body.

    Args:
        body: Response body (str or bytes)
        status: HTTP status code
        headers: Response headers
        media_type: Content-Type without charset
    """

    def __init__(
        self,
        body: Union[str, bytes] = b"",
        status: int = 200,
        headers: Optional[Dict[str, str]] = None,
        media_type: Optional[str] = None,
        *,
        charset: Optional[str] = "utf-8",
    ):
        self.body = body
        self.status = status
        self.headers: Dict[str, str] = {}
        for key, value in (headers or {}).items():
            self.headers[key.lower()] = value
        self.media_type = media_type
        if media_type:
            self.headers["content-type"] = (
                f"{media_type}; charset={charset}" if charset else media_type
            )

    @classmethod
    def redirect(cls, location: str, status: int = 303) -> "HatResponse":
        """Create redirect response."""
        return cls(b"", status=status, headers={"location": location})

    @classmethod
    def not_modified(cls, etag: str) -> "HatResponse":
        return cls(b"", status=304, headers={"etag": etag})

    def body_bytes(self) -> bytes:
        if isinstance(self.body, bytes):
            return self.body
        return self.body.encode("utf-8")

    def __repr__(self) -> str:
        return f"HatResponse(status={self.status}, media_type={self.media_type!r})"
