"""
Authorization guard for protected actions.

Credentials travel as HTTP Basic auth. The guard runs on every protected
request; nothing is cached between requests.
"""

from __future__ import annotations

import hmac
import logging
from typing import TYPE_CHECKING, Callable

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

from .faults import UnauthorizedFault
from .options import Credentials
from .utils import call

if TYPE_CHECKING:
    from .maker import Maker
    from .request import HatRequest


logger = logging.getLogger("resthat.auth")

_hasher = PasswordHasher()


def hash_password(password: str) -> str:
    """
    Hash a password with Argon2id for use as a configured credential.

    Example output:
        $argon2id$v=19$m=65536,t=3,p=4$saltbase64$hashbase64
    """
    return _hasher.hash(password)


def verify_password(stored: str, supplied: str) -> bool:
    """
    Check a supplied password against a stored one.

    ``stored`` may be plain text (constant-time comparison) or an argon2 hash.
    """
    if stored.startswith("$argon2"):
        try:
            return _hasher.verify(stored, supplied)
        except (VerificationError, InvalidHashError):
            return False
    return hmac.compare_digest(stored.encode("utf-8"), supplied.encode("utf-8"))


def default_authenticator(credentials: Callable[[], Credentials]) -> Callable[[str, str], bool]:
    """
    Build the authenticator that compares against configured credentials.

    ``credentials`` is read on every call so later ``protect(..., username=...)``
    overrides are honoured.
    """

    def authenticate(username: str, password: str) -> bool:
        current = credentials()
        # Both checks always run so timing does not reveal which one failed
        user_ok = hmac.compare_digest(current.username.encode("utf-8"), username.encode("utf-8"))
        password_ok = verify_password(current.password, password)
        return user_ok and password_ok

    return authenticate


class BasicAuthGuard:
    """
    Checks a request's basic-auth credentials with the maker's authenticator.

    Raises:
        UnauthorizedFault: credentials missing or rejected
    """

    def __init__(self, maker: "Maker"):
        self.maker = maker

    async def check(self, request: "HatRequest") -> None:
        realm = self.maker.credentials().realm
        supplied = request.basic_auth()
        if supplied is None:
            logger.warning("Missing credentials for %s %s", request.method, request.path)
            raise UnauthorizedFault(realm)

        username, password = supplied
        if not await call(self.maker.authenticator(), username, password):
            logger.warning("Rejected credentials for %s %s", request.method, request.path)
            raise UnauthorizedFault(realm)
