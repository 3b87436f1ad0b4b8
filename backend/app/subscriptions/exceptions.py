"""Denials and failures raised by the access-control engine."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from fastapi import HTTPException, status

SUBSCRIPTION_ERROR_CODE = "SUBSCRIPTION_ERROR"


@dataclass
class FeatureGateError(Exception):
    """Represents a gating decision that terminates the request."""

    message: str
    status_code: int = status.HTTP_403_FORBIDDEN
    detail: Optional[Mapping[str, Any]] = None

    def __post_init__(self) -> None:
        base_detail: Dict[str, Any] = {
            "success": False,
            "message": self.message,
            "error": SUBSCRIPTION_ERROR_CODE,
        }
        if self.detail:
            base_detail.update(self.detail)
        object.__setattr__(self, "_payload", base_detail)
        super().__init__(self.message)

    @property
    def payload(self) -> Mapping[str, Any]:
        """Serialized representation suitable for JSON responses."""

        return self._payload

    @property
    def reason(self) -> str:
        return type(self).__name__

    def to_http_exception(self) -> HTTPException:
        """Convert the domain error into a FastAPI HTTPException."""

        return HTTPException(status_code=self.status_code, detail=dict(self.payload))


@dataclass
class AuthenticationRequired(FeatureGateError):
    message: str = "Authentication required"
    status_code: int = status.HTTP_401_UNAUTHORIZED


@dataclass
class TierInsufficient(FeatureGateError):
    message: str = "Subscription upgrade required"
    status_code: int = status.HTTP_403_FORBIDDEN


@dataclass
class SubscriptionInactive(FeatureGateError):
    message: str = "Active subscription required"
    status_code: int = status.HTTP_403_FORBIDDEN


@dataclass
class FeatureLocked(FeatureGateError):
    message: str = "Feature requires upgrade"
    status_code: int = status.HTTP_403_FORBIDDEN


@dataclass
class QuotaExceeded(FeatureGateError):
    message: str = "Usage limit exceeded"
    status_code: int = status.HTTP_429_TOO_MANY_REQUESTS


@dataclass
class ConfigurationMissing(FeatureGateError):
    message: str = "Invalid subscription tier"
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR


@dataclass
class UsageCheckFailed(FeatureGateError):
    message: str = "Usage check failed"
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR


class TransientTrackingFailure(RuntimeError):
    """Usage bookkeeping could not be applied; logged and never surfaced."""


__all__ = [
    "AuthenticationRequired",
    "ConfigurationMissing",
    "FeatureGateError",
    "FeatureLocked",
    "QuotaExceeded",
    "SUBSCRIPTION_ERROR_CODE",
    "SubscriptionInactive",
    "TierInsufficient",
    "TransientTrackingFailure",
    "UsageCheckFailed",
]
