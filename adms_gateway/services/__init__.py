# =======================================================================================
# adms_gateway/services/__init__.py - Services Package
# =======================================================================================
from .heartbeat_service import HeartbeatTracker
from .merge_service import MergeEngine, UserMergeStrategy, FingerprintMergeStrategy
from .command_service import CommandDispatchQueue
from .binding_service import BindingAuthority
from .ingress_service import PushIngressService
from .sync_service import SyncService
from .user_service import UserService
from .dashboard_service import DashboardService

__all__ = [
    "HeartbeatTracker", "MergeEngine", "UserMergeStrategy", "FingerprintMergeStrategy",
    "CommandDispatchQueue", "BindingAuthority", "PushIngressService", "SyncService",
    "UserService", "DashboardService",
]
