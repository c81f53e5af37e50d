# =======================================================================================
# adms_gateway/models/schemas.py - Pydantic Models
# =======================================================================================
from datetime import datetime
from typing import Annotated, Any, List, Optional

from pydantic import BaseModel, BeforeValidator, Field, StringConstraints

from .enums import BindingStatus, CommandStatus, DeviceStatus, ResultStatus


def _to_str(value: Any) -> Any:
    # Terminals and bridge scripts send PINs and card numbers as numbers or strings.
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


Identifier = Annotated[
    str, BeforeValidator(_to_str), StringConstraints(strip_whitespace=True, min_length=1)
]
OptionalText = Annotated[Optional[str], BeforeValidator(_to_str)]
OptionalInt = Annotated[Optional[int], BeforeValidator(_blank_to_none)]


# ========== Health ==========

class HealthResponse(BaseModel):
    status: str                 # "ok" | "error"
    dataAvailable: bool
    message: Optional[str] = None


class StatusMessageResponse(BaseModel):
    status: ResultStatus
    message: str


# ========== Device sync bridge ==========

class SyncUserRequest(BaseModel):
    """User record reported by a terminal (or the desktop sync bridge)."""
    user_id: Identifier = Field(..., description="Terminal PIN")
    device_sn: Identifier = Field(..., description="Serial of the reporting terminal")
    name: OptionalText = None
    role: OptionalInt = Field(None, description="Terminal privilege; 0 when first inserted without one")
    card_number: OptionalText = None
    password: OptionalText = None


class SyncFingerprintRequest(BaseModel):
    user_id: Identifier
    finger_id: int = Field(0, ge=0)
    template_data: str = Field("", description="Opaque vendor template, stored as sent")
    device_sn: OptionalText = None
    valid: int = 1


class SyncLogRequest(BaseModel):
    device_sn: Identifier
    user_id: Identifier
    check_time: datetime
    status: int = 0
    verify_mode: int = 1
    work_code: int = 0


class SyncResponse(BaseModel):
    status: ResultStatus
    message: str
    id: Optional[int] = None


class SyncedUser(BaseModel):
    user_id: str
    name: Optional[str] = None
    role: Optional[int] = None
    card_number: Optional[str] = None
    password: Optional[str] = None
    email: Optional[str] = None
    allow_remote: int = 0
    device_sn: Optional[str] = None


class SyncedFingerprint(BaseModel):
    user_id: str
    finger_id: int
    template_data: str


class UsersExportResponse(BaseModel):
    status: ResultStatus
    users: List[SyncedUser]


class FingerprintsExportResponse(BaseModel):
    status: ResultStatus
    templates: List[SyncedFingerprint]


# ========== Web-managed user fields ==========

class WebUser(BaseModel):
    user_id: str
    email: Optional[str] = None
    name: Optional[str] = None
    allow_remote: int = 0


class WebUserUpdateRequest(BaseModel):
    user_id: Identifier
    email: Optional[str] = None
    allow_remote: Optional[int] = Field(None, description="1 allows remote/mobile punches")
    name: str = "Unknown"


# ========== Terminals / logs for the dashboard ==========

class DeviceItem(BaseModel):
    id: int
    serial_number: str
    alias: str
    ip_address: Optional[str] = None
    last_activity: Optional[datetime] = None
    status: DeviceStatus
    state: int                  # 1 = online, 0 = offline
    area_name: str = "Main Branch"


class TransactionItem(BaseModel):
    id: int
    emp_code: str
    emp_name: str
    punch_time: datetime
    punch_state: Optional[int] = None
    verify_type_display: str
    terminal_sn: str
    terminal_alias: str
    area_alias: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    image_proof: Optional[str] = None


class ManualPunchRequest(BaseModel):
    """Mobile/manual punch creation, or deletion of a manual log with action="delete"."""
    action: Optional[str] = None
    id: Optional[int] = None
    emp_code: OptionalText = None
    punch_time: Optional[datetime] = None
    punch_state: Optional[int] = None
    area_alias: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    image_proof: Optional[str] = None


class LogItem(BaseModel):
    id: int
    device_sn: str
    user_id: str
    check_time: datetime
    status: Optional[int] = None
    verify_mode: Optional[int] = None
    created_at: Optional[datetime] = None


class BiometricStatsResponse(BaseModel):
    status: ResultStatus
    devices: List[DeviceItem]
    logs: List[LogItem]


class PurgeResponse(BaseModel):
    status: ResultStatus
    deleted: int
    server_time: datetime


# ========== Command queue ==========

class DispatchResponse(BaseModel):
    status: ResultStatus
    message: str
    count: int


class CommandItem(BaseModel):
    id: int
    device_sn: str
    command: str
    status: CommandStatus
    return_code: Optional[int] = None
    created_at: Optional[datetime] = None
    executed_at: Optional[datetime] = None


# ========== Device binding (mobile channel) ==========

class BindDeviceRequest(BaseModel):
    emp_id: Identifier
    device_uuid: Identifier
    device_model: str = "Unknown"


class BindingResponse(BaseModel):
    status: BindingStatus
    message: Optional[str] = None
