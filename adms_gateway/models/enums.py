# =======================================================================================
# adms_gateway/models/enums.py - Enums and Constants
# =======================================================================================
from enum import Enum
from typing import Literal

# Type aliases for better type hints
DeviceStatus = Literal["ONLINE", "OFFLINE"]
CommandStatus = Literal["PENDING", "SENT", "SUCCESS", "ERROR"]
BindingStatus = Literal["NEW_USER", "ALLOWED", "BLOCKED", "SUCCESS"]
ResultStatus = Literal["success", "error"]

class AttendanceTable(Enum):
    """`table=` selectors a terminal pushes to /iclock/cdata."""
    ATTLOG = "ATTLOG"
    OPERLOG = "OPERLOG"

class CommandKind(Enum):
    """Provisioning payloads understood by the terminal firmware."""
    USER_INFO = "DATA UPDATE USERINFO"
    FINGER_TEMPLATE = "DATA UPDATE FINGERTMP"

class VerifyMode(Enum):
    """Verification method codes stored on attendance logs."""
    PASSWORD = 0
    FINGER = 1
    FACE = 15
    MANUAL = 15  # dashboard-entered corrections share the face code
    MOBILE = 200

# Source labels for rows not pushed by a terminal
WEB_ADMIN_SN = "WEB_ADMIN"
MOBILE_SN = "Mobile"
MANUAL_SN = "MANUAL"
