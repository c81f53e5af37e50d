# =======================================================================================
# adms_gateway/utils/__init__.py - Utils Package
# =======================================================================================
from .exceptions import *
from .validators import *

__all__ = [
    "GatewayError", "ClientInputError", "MalformedRecordError", "ConfigurationError",
    "ProtocolValidator", "AttendanceRecord", "CommandResult", "split_check_window",
]
