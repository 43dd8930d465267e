"""
Request logging with timing.

Two lines per handled request: a summary before the action runs and the
elapsed time after it returns. A failing action gets a failure line with the
time spent up to the failure, and its exception propagates unchanged.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional

if TYPE_CHECKING:
    from .request import HatRequest


class RequestLogger:
    """Wraps action execution with start/finish log lines."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger("resthat.maker")

    @staticmethod
    def summary(request: "HatRequest", action: str) -> str:
        parts = [
            f"{request.method} {request.path}",
            f"Params: {request.params!r}",
            f"Action: {action.upper()}",
        ]
        return "[resthat] " + " | ".join(parts)

    async def benchmark(
        self,
        request: "HatRequest",
        action: str,
        run: Callable[[], Awaitable[Any]],
    ) -> Any:
        self.logger.info(self.summary(request, action))

        start = time.perf_counter()
        try:
            result = await run()
        except Exception:
            elapsed = time.perf_counter() - start
            self.logger.error(
                "          Request failed after %.6f sec.", elapsed, exc_info=True,
            )
            raise

        elapsed = time.perf_counter() - start
        self.logger.info("          Request finished in %.6f sec.", elapsed)
        return result
