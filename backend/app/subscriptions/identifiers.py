"""User identifiers accepted at the request boundary.

Callers hand us whatever the client sent: a numeric id, an email address or
an id from the legacy record store. The raw value is classified exactly once
by :func:`parse_identifier`; everything downstream works with the tagged value
or the resolved numeric id.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Union

from email_validator import EmailNotValidError, validate_email

_LEGACY_ID_PATTERN = re.compile(r"^rec[A-Za-z0-9]{14}$")


@dataclass(frozen=True)
class Email:
    value: str


@dataclass(frozen=True)
class LegacyId:
    value: str


@dataclass(frozen=True)
class NumericId:
    value: int


Identifier = Union[Email, LegacyId, NumericId]


def parse_identifier(raw: Union[str, int]) -> Identifier:
    """Classify a raw identifier, raising ``ValueError`` when it matches no shape."""

    if isinstance(raw, bool):
        raise ValueError("Boolean is not a valid user identifier")
    if isinstance(raw, int):
        if raw <= 0:
            raise ValueError(f"Invalid numeric user id: {raw}")
        return NumericId(raw)

    candidate = (raw or "").strip()
    if not candidate:
        raise ValueError("User identifier must not be empty")
    if candidate.isdigit():
        return parse_identifier(int(candidate))
    if _LEGACY_ID_PATTERN.match(candidate):
        return LegacyId(candidate)
    try:
        validated = validate_email(candidate, check_deliverability=False)
    except EmailNotValidError as exc:
        raise ValueError(f"Unrecognized user identifier: {candidate!r}") from exc
    return Email(validated.normalized.lower())


__all__ = ["Email", "Identifier", "LegacyId", "NumericId", "parse_identifier"]
