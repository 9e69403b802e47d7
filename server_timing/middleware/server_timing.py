"""Middleware that gives every request its own timing ledger."""

import logging
from contextlib import nullcontext
from typing import Optional, Union

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from ..core.config import settings
from ..timing import HEADER_KEY, ServerTiming
from ..utils.validation import validate_label, validate_precision

logger = logging.getLogger(__name__)


class ServerTimingMiddleware(BaseHTTPMiddleware):
    """Attach a ``Server-Timing`` header built from ``request.state.server_timing``.

    Handlers add entries to the ledger (directly or through
    ``get_server_timing``). When ``total_label`` is set, the whole downstream
    call is timed under that label and shows up first in the header.
    """

    def __init__(
        self,
        app: ASGIApp,
        precision: Optional[Union[int, float]] = None,
        total_label: Optional[str] = None,
        enabled: Optional[bool] = None,
    ) -> None:
        super().__init__(app)
        if precision is None:
            precision = settings.SERVER_TIMING_PRECISION
        if total_label is None:
            total_label = settings.SERVER_TIMING_TOTAL_LABEL
        if enabled is None:
            enabled = settings.SERVER_TIMING_ENABLED
        self.precision = validate_precision(precision)
        self.total_label = validate_label(total_label) if total_label else ""
        self.enabled = enabled

    async def dispatch(self, request: Request, call_next):
        if not self.enabled:
            return await call_next(request)

        timing = ServerTiming(self.precision)
        request.state.server_timing = timing
        scope = timing.measure(self.total_label) if self.total_label else nullcontext()
        with scope:
            response = await call_next(request)

        value = timing.render()
        if not value:
            return response
        try:
            # append so a value set by the handler itself is kept
            response.headers.append(HEADER_KEY, value)
        except UnicodeEncodeError:
            # header values travel as latin-1; a description outside it cannot be sent
            logger.warning(
                "%s %s: %s header dropped, value is not latin-1: %r",
                request.method,
                request.url.path,
                HEADER_KEY,
                value,
            )
            return response
        logger.debug("%s %s %s: %s", request.method, request.url.path, HEADER_KEY, value)
        return response
