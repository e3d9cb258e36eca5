from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import constr

from app.schemas.base import CamelModel
from app.schemas.enums import DeviceClass


class DeviceRegisterInput(CamelModel):
    device_id: constr(strip_whitespace=True, min_length=1, max_length=128)
    device_name: Optional[constr(strip_whitespace=True, max_length=128)] = None
    device_type: Optional[DeviceClass] = None


class DeviceOut(CamelModel):
    device_id: str
    device_name: str
    device_type: str
    last_active: Optional[datetime] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


class DeviceRemovedResponse(CamelModel):
    removed: bool
