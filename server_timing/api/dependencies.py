from fastapi import Request

from ..core.config import settings
from ..timing import ServerTiming


def get_server_timing(request: Request) -> ServerTiming:
    """Return the ledger for this request.

    ``ServerTimingMiddleware`` normally creates it. Without the middleware a
    new ledger is stored on ``request.state`` and the caller is responsible
    for attaching the header.
    """
    timing = getattr(request.state, "server_timing", None)
    if timing is None:
        timing = ServerTiming(settings.SERVER_TIMING_PRECISION)
        request.state.server_timing = timing
    return timing
