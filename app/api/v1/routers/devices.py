# app/api/v1/routers/devices.py
# ╔══════════════════════════════════════════════════════════════════════════╗
# ║ 📱 StreamGate · Devices                                                  ║
# ║                                                                          ║
# ║  - GET    /devices                → Registered devices                   ║
# ║  - POST   /devices/register       → Register (201) or refresh (200)      ║
# ║  - DELETE /devices/{deviceId}     → Forget device + its streams          ║
# ╚══════════════════════════════════════════════════════════════════════════╝

from typing import List

from fastapi import APIRouter, Depends, Path, Request, status
from fastapi.responses import JSONResponse

from app.api.http_utils import get_client_ip, json_no_store
from app.core.dependencies import get_concurrency_guard, get_entitlement_resolver
from app.core.limiter import rate_limit
from app.core.security import get_current_account_id
from app.repositories.accounts import Device
from app.schemas.devices import DeviceOut, DeviceRegisterInput, DeviceRemovedResponse
from app.services.concurrency_guard import ConcurrencyGuard, DeviceDescriptor
from app.services.entitlement import EntitlementResolver

router = APIRouter(prefix="/devices", tags=["Devices"])


def _out(device: Device) -> DeviceOut:
    return DeviceOut(
        device_id=device.device_id,
        device_name=device.device_name,
        device_type=device.device_type,
        last_active=device.last_active,
        ip_address=device.ip_address,
        user_agent=device.user_agent,
    )


@router.get("", response_model=List[DeviceOut], summary="List registered devices")
@rate_limit("60/minute")
async def list_devices(
    request: Request,
    account_id: str = Depends(get_current_account_id),
    guard: ConcurrencyGuard = Depends(get_concurrency_guard),
) -> JSONResponse:
    devices = await guard.list_devices(account_id)
    return json_no_store([_out(d).model_dump(by_alias=True, mode="json") for d in devices])


@router.post(
    "/register",
    response_model=DeviceOut,
    status_code=status.HTTP_201_CREATED,
    summary="Register a device without starting a stream",
)
@rate_limit("20/minute")
async def register_device(
    request: Request,
    body: DeviceRegisterInput,
    account_id: str = Depends(get_current_account_id),
    entitlements: EntitlementResolver = Depends(get_entitlement_resolver),
    guard: ConcurrencyGuard = Depends(get_concurrency_guard),
) -> JSONResponse:
    """
    Applies the same device cap as stream admission.

    201 when the device is new, 200 when an existing one was refreshed.
    """
    policy = (await entitlements.resolve(account_id)).policy
    descriptor = DeviceDescriptor(
        device_id=body.device_id,
        device_name=body.device_name,
        device_type=body.device_type.value if body.device_type else None,
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    device, created = await guard.register_device(account_id, policy, descriptor)
    return json_no_store(_out(device), status_code=201 if created else 200)


@router.delete("/{device_id}", response_model=DeviceRemovedResponse, summary="Remove a device")
@rate_limit("20/minute")
async def remove_device(
    request: Request,
    device_id: str = Path(..., min_length=1, max_length=128),
    account_id: str = Depends(get_current_account_id),
    guard: ConcurrencyGuard = Depends(get_concurrency_guard),
) -> JSONResponse:
    """Unknown ids are not an error (`removed: false`)."""
    removed = await guard.remove_device(account_id, device_id)
    return json_no_store(DeviceRemovedResponse(removed=removed))


__all__ = ["router"]
