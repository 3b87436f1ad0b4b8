"""Administrator endpoints for issuing and revoking quota grants."""
from __future__ import annotations

import logging
from typing import Optional, Union

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import ValidationError

from ..feature_gates import access_control, current_account
from ..subscriptions import (
    AccessControl,
    AccountUser,
    AuthenticationRequired,
    GrantCreate,
    parse_identifier,
)
from ..schemas.subscriptions import GrantCreateRequest, GrantHistoryResponse, GrantResponse

logger = logging.getLogger("subscriptions.admin")

router = APIRouter(prefix="/api/admin", tags=["admin"])


def require_admin(user: Optional[AccountUser] = Depends(current_account)) -> AccountUser:
    if user is None:
        raise AuthenticationRequired()
    if not user.is_admin:
        logger.warning("Admin access denied for user %s with role %s", user.id, user.role)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user


async def _resolve_user_id(access: AccessControl, raw: Union[int, str]) -> int:
    try:
        identifier = parse_identifier(raw)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    user_id = await access.user_store.resolve_user_id(identifier)
    if user_id is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user_id


@router.post("/grants", response_model=GrantResponse, status_code=status.HTTP_201_CREATED)
async def create_grant(
    payload: GrantCreateRequest,
    admin: AccountUser = Depends(require_admin),
    access: AccessControl = Depends(access_control),
) -> GrantResponse:
    user_id = await _resolve_user_id(access, payload.user_identifier)
    try:
        data = GrantCreate(
            user_id=user_id,
            grant_type=payload.grant_type,
            granted_by_id=admin.id,
            tier_override=payload.tier_override,
            video_limit_override=payload.video_limit_override,
            expires_at=payload.expires_at,
            reason=payload.reason,
        )
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=[error["msg"] for error in exc.errors()],
        ) from exc

    try:
        grant = await access.grants.create_grant(data)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return GrantResponse.from_grant(grant)


@router.delete("/grants/{grant_id}", response_model=GrantResponse)
async def revoke_grant(
    grant_id: int,
    admin: AccountUser = Depends(require_admin),
    access: AccessControl = Depends(access_control),
) -> GrantResponse:
    try:
        grant = await access.grants.revoke_grant(grant_id, admin.id)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return GrantResponse.from_grant(grant)


@router.get("/users/{identifier}/grants", response_model=GrantHistoryResponse)
async def list_user_grants(
    identifier: str,
    admin: AccountUser = Depends(require_admin),
    access: AccessControl = Depends(access_control),
) -> GrantHistoryResponse:
    user_id = await _resolve_user_id(access, identifier)
    grants = await access.grants.list_grants(user_id)
    current = await access.grants.check_grant_access(user_id)
    return GrantHistoryResponse(
        user_id=user_id,
        access=current,
        grants=[GrantResponse.from_grant(grant) for grant in grants],
    )
