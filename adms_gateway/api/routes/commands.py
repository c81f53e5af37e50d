# =======================================================================================
# adms_gateway/api/routes/commands.py - Command Queue Endpoints
# =======================================================================================
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.engine import Connection
from ...models.enums import CommandStatus
from ...models.schemas import CommandItem, DispatchResponse
from ...services.command_service import CommandDispatchQueue
from ...utils.validators import ProtocolValidator
from ..dependencies import get_db_connection

router = APIRouter()
command_queue = CommandDispatchQueue()


@router.get("/dispatch", response_model=DispatchResponse)
def dispatch(
    target_sn: Optional[str] = Query(None, description="Serial of the terminal to restore"),
    conn: Connection = Depends(get_db_connection),
):
    """Queue every user and valid template for one terminal (full broadcast)."""
    ProtocolValidator.require(target_sn=target_sn)
    count = command_queue.queue_provisioning_broadcast(conn, target_sn)
    return DispatchResponse(
        status="success",
        message=f"Queued {count} commands for device {target_sn}",
        count=count,
    )


@router.get("/commands", response_model=List[CommandItem])
def list_commands(
    device_sn: Optional[str] = Query(None),
    status: Optional[CommandStatus] = Query(None),
    conn: Connection = Depends(get_db_connection),
):
    return command_queue.list_commands(conn, device_sn=device_sn, status=status)
