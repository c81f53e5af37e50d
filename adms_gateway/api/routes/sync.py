# =======================================================================================
# adms_gateway/api/routes/sync.py - Synchronization Bridge Endpoints
# =======================================================================================
from fastapi import APIRouter, Depends
from sqlalchemy.engine import Connection
from ...models.schemas import (
    FingerprintsExportResponse,
    SyncFingerprintRequest,
    SyncLogRequest,
    SyncResponse,
    SyncUserRequest,
    UsersExportResponse,
)
from ...services.sync_service import SyncService
from ...services.user_service import UserService
from ..dependencies import get_db_connection

router = APIRouter()
sync_service = SyncService()
user_service = UserService()

@router.post("/iclock/sync_user", response_model=SyncResponse)
def sync_user(request: SyncUserRequest, conn: Connection = Depends(get_db_connection)):
    """Merge a user reported by a terminal; blank fields never erase stored ones."""
    return sync_service.sync_user(conn, request)

@router.post("/iclock/sync_fingerprint", response_model=SyncResponse)
def sync_fingerprint(request: SyncFingerprintRequest, conn: Connection = Depends(get_db_connection)):
    """Store a fingerprint template; the latest upload for a user/finger wins."""
    return sync_service.sync_fingerprint(conn, request)

@router.post("/iclock/sync_log", response_model=SyncResponse)
def sync_log(request: SyncLogRequest, conn: Connection = Depends(get_db_connection)):
    return sync_service.sync_log(conn, request)

@router.get("/iclock/get_all_users", response_model=UsersExportResponse)
def get_all_users(conn: Connection = Depends(get_db_connection)):
    return UsersExportResponse(status="success", users=user_service.list_all_users(conn))

@router.get("/iclock/get_all_fingerprints", response_model=FingerprintsExportResponse)
def get_all_fingerprints(conn: Connection = Depends(get_db_connection)):
    return FingerprintsExportResponse(
        status="success", templates=user_service.list_valid_fingerprints(conn)
    )
