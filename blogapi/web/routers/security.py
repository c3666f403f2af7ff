from datetime import datetime, timezone
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response, status

from blogapi.core.errors import Outcome
from blogapi.core.schemas import DeviceView
from blogapi.core.security import RefreshClaims, require_refresh_claims
from blogapi.services.auth import AuthService
from blogapi.services.sessions import DeviceRegistry
from blogapi.web.deps import get_auth_service, get_device_registry

router = APIRouter(prefix="/security", tags=["security"])


async def current_device_claims(
    claims: RefreshClaims = Depends(require_refresh_claims),
    auth: AuthService = Depends(get_auth_service),
) -> RefreshClaims:
    if await auth.current_session(claims) is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return claims


@router.get("/devices", response_model=List[DeviceView])
async def list_devices(
    claims: RefreshClaims = Depends(current_device_claims),
    devices: DeviceRegistry = Depends(get_device_registry),
):
    sessions = await devices.list_active_sessions(claims.user_id)
    return [
        DeviceView(
            ip=s.ip,
            title=s.title,
            last_active_date=datetime.fromtimestamp(s.issued_at, tz=timezone.utc),
            device_id=s.device_id,
        )
        for s in sessions
    ]


@router.delete("/devices", status_code=status.HTTP_204_NO_CONTENT)
async def revoke_other_devices(
    claims: RefreshClaims = Depends(current_device_claims),
    devices: DeviceRegistry = Depends(get_device_registry),
):
    await devices.revoke_all_except(claims.user_id, claims.device_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/devices/{device_id}", status_code=status.HTTP_204_NO_CONTENT)
async def revoke_device(
    device_id: str,
    claims: RefreshClaims = Depends(current_device_claims),
    devices: DeviceRegistry = Depends(get_device_registry),
):
    outcome = await devices.revoke_owned_session(claims.user_id, device_id)
    if outcome is Outcome.NOT_FOUND:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Device not found")
    if outcome is Outcome.FORBIDDEN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Device belongs to another user")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
