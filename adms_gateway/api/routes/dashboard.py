# =======================================================================================
# adms_gateway/api/routes/dashboard.py
# =======================================================================================
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.engine import Connection

from ...models.schemas import (
    BiometricStatsResponse,
    DeviceItem,
    ManualPunchRequest,
    PurgeResponse,
    StatusMessageResponse,
    TransactionItem,
)
from ...services.dashboard_service import DashboardService
from ..dependencies import get_db_connection

router = APIRouter()
dashboard_service = DashboardService()


@router.get("/terminals", response_model=List[DeviceItem])
def get_terminals(conn: Connection = Depends(get_db_connection)):
    """Devices with their status derived from the last contact."""
    return dashboard_service.list_terminals(conn)


@router.get("/transactions", response_model=List[TransactionItem])
def get_transactions(
    punch_time__gte: Optional[datetime] = Query(None),
    punch_time__lte: Optional[datetime] = Query(None),
    emp_code: Optional[str] = Query(None),
    terminal_sn: Optional[str] = Query(None),
    device_sn: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, ge=1),
    conn: Connection = Depends(get_db_connection),
):
    return dashboard_service.get_transactions(
        conn,
        start=punch_time__gte,
        end=punch_time__lte,
        emp_code=emp_code,
        terminal_sn=terminal_sn or device_sn,
        page=page,
        page_size=page_size,
    )


@router.post("/transactions", response_model=StatusMessageResponse)
def post_transaction(request: ManualPunchRequest, conn: Connection = Depends(get_db_connection)):
    message = dashboard_service.record_manual_punch(conn, request)
    return StatusMessageResponse(status="success", message=message)


@router.get("/biometric_stats", response_model=BiometricStatsResponse)
def get_biometric_stats(conn: Connection = Depends(get_db_connection)):
    return BiometricStatsResponse(
        status="success",
        devices=dashboard_service.list_terminals(conn),
        logs=dashboard_service.get_recent_logs(conn),
    )


@router.post("/maintenance/purge_future_logs", response_model=PurgeResponse)
def purge_future_logs(conn: Connection = Depends(get_db_connection)):
    """Remove punches stamped in the future by a terminal with a bad clock."""
    deleted = dashboard_service.purge_future_logs(conn)
    return PurgeResponse(status="success", deleted=deleted, server_time=dashboard_service.clock())
