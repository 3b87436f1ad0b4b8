"""Runs deferred usage bookkeeping once the gated handler has succeeded."""
from __future__ import annotations

import logging
from typing import Awaitable, Callable, List

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("subscriptions.gates")

UsageHook = Callable[[], Awaitable[None]]


def defer_usage_hook(request: Request, hook: UsageHook) -> None:
    hooks = getattr(request.state, "usage_hooks", None)
    if hooks is None:
        raise RuntimeError("UsageRecordingMiddleware is not installed on this application")
    hooks.append(hook)


class UsageRecordingMiddleware(BaseHTTPMiddleware):
    """Invokes the hooks queued by ``increment_usage``/``track_usage``.

    Hooks only run when the handler produced a 2xx response. A raised
    exception or an error response leaves every counter and the free-trial
    credit untouched.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        hooks: List[UsageHook] = []
        request.state.usage_hooks = hooks

        response = await call_next(request)
        if not hooks:
            return response

        if 200 <= response.status_code < 300:
            for hook in hooks:
                await hook()
        else:
            logger.info(
                "Usage not recorded for %s: response status %s",
                request.url.path,
                response.status_code,
            )
        return response


__all__ = ["UsageRecordingMiddleware", "defer_usage_hook"]
