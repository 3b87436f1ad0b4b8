"""Rendering of gate denials for API and browser clients."""
from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict, List

from fastapi import Request, status
from fastapi.responses import JSONResponse, RedirectResponse, Response

from ..subscriptions.exceptions import FeatureGateError
from ..subscriptions.tiers import DEFAULT_UPGRADE_URL

logger = logging.getLogger("subscriptions.gates")

DEFAULT_SIGN_IN_URL = "/auth/sign-in"


def wants_json(request: Request) -> bool:
    """Return whether the caller is an API client rather than a browser page."""

    if request.headers.get("x-requested-with", "").lower() == "xmlhttprequest":
        return True
    return "json" in request.headers.get("accept", "").lower()


def redirect_target(status_code: int, *, sign_in_url: str, upgrade_url: str) -> str:
    if status_code == status.HTTP_401_UNAUTHORIZED:
        return sign_in_url
    return upgrade_url


def _flash(request: Request, message: str) -> None:
    if "session" not in request.scope:
        logger.debug("Session unavailable; skipping flash message")
        return
    messages: List[Dict[str, Any]] = list(request.session.get("flash", []))
    messages.append({"category": "error", "message": message})
    request.session["flash"] = messages


def render_gate_error(
    request: Request,
    exc: FeatureGateError,
    *,
    sign_in_url: str = DEFAULT_SIGN_IN_URL,
    upgrade_url: str = DEFAULT_UPGRADE_URL,
) -> Response:
    user = getattr(request.state, "user", None)
    logger.warning(
        "Subscription error: %s user=%s path=%s detail=%s",
        exc.message,
        getattr(user, "id", None),
        request.url.path,
        dict(exc.detail or {}),
    )

    if wants_json(request):
        return JSONResponse(status_code=exc.status_code, content=dict(exc.payload))

    _flash(request, exc.message)
    target = redirect_target(exc.status_code, sign_in_url=sign_in_url, upgrade_url=upgrade_url)
    return RedirectResponse(url=target, status_code=status.HTTP_303_SEE_OTHER)


GateErrorHandler = Callable[[Request, FeatureGateError], Awaitable[Response]]


def gate_exception_handler(
    *,
    sign_in_url: str = DEFAULT_SIGN_IN_URL,
    upgrade_url: str = DEFAULT_UPGRADE_URL,
) -> GateErrorHandler:
    """Build the application exception handler for gate denials.

    The redirect targets are bound here from the loaded configuration.
    """

    async def handler(request: Request, exc: FeatureGateError) -> Response:
        return render_gate_error(request, exc, sign_in_url=sign_in_url, upgrade_url=upgrade_url)

    return handler


feature_gate_exception_handler = gate_exception_handler()


__all__ = [
    "DEFAULT_SIGN_IN_URL",
    "feature_gate_exception_handler",
    "gate_exception_handler",
    "redirect_target",
    "render_gate_error",
    "wants_json",
]
