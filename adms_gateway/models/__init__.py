# =======================================================================================
# adms_gateway/models/__init__.py - Models Package
# =======================================================================================
from .schemas import *
from .enums import *
from .tables import metadata

__all__ = [
    "SyncUserRequest", "SyncFingerprintRequest", "SyncLogRequest", "SyncResponse",
    "WebUserUpdateRequest", "ManualPunchRequest", "BindDeviceRequest", "BindingResponse",
    "DeviceItem", "TransactionItem", "CommandItem", "DispatchResponse",
    "DeviceStatus", "CommandStatus", "BindingStatus", "AttendanceTable", "CommandKind",
    "VerifyMode", "metadata",
]
