# =======================================================================================
# adms_gateway/services/sync_service.py - Device Data Synchronization Service
# =======================================================================================
from typing import Optional

from sqlalchemy.engine import Connection

from ..database import insert_if_absent
from ..models.schemas import SyncFingerprintRequest, SyncLogRequest, SyncResponse, SyncUserRequest
from ..models.tables import attendance_logs
from .heartbeat_service import HeartbeatTracker
from .merge_service import MergeEngine


class SyncService:
    """Handles records forwarded by the desktop/Node bridge that reads terminals directly."""

    def __init__(self, merge: Optional[MergeEngine] = None, heartbeat: Optional[HeartbeatTracker] = None):
        self.merge = merge or MergeEngine()
        self.heartbeat = heartbeat or HeartbeatTracker()

    def sync_user(self, conn: Connection, request: SyncUserRequest) -> SyncResponse:
        row_id, created = self.merge.merge_user(conn, request)
        message = "User created" if created else "User updated (merged)"
        return SyncResponse(status="success", message=message, id=row_id)

    def sync_fingerprint(self, conn: Connection, request: SyncFingerprintRequest) -> SyncResponse:
        row_id, created = self.merge.merge_fingerprint(conn, request)
        message = "Template created" if created else "Template updated"
        return SyncResponse(status="success", message=message, id=row_id)

    def sync_log(self, conn: Connection, request: SyncLogRequest) -> SyncResponse:
        """Insert one forwarded punch (duplicates ignored) and mark its terminal as seen."""
        inserted = insert_if_absent(
            conn,
            attendance_logs,
            {
                "device_sn": request.device_sn,
                "user_id": request.user_id,
                "check_time": request.check_time,
                "status": request.status,
                "verify_mode": request.verify_mode,
                "work_code": request.work_code,
            },
        )
        self.heartbeat.record_contact(conn, request.device_sn)
        message = "Log synced successfully." if inserted else "Log already synced."
        return SyncResponse(status="success", message=message)
