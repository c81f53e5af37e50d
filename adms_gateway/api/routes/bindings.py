# =======================================================================================
# adms_gateway/api/routes/bindings.py - Mobile Device Binding Endpoints
# =======================================================================================
from fastapi import APIRouter, Depends, Query
from sqlalchemy.engine import Connection
from ...models.schemas import BindDeviceRequest, BindingResponse
from ...services.binding_service import BindingAuthority
from ..dependencies import get_db_connection

router = APIRouter()
binding_authority = BindingAuthority()

BLOCKED_MESSAGES = {
    "check": "Account linked to another device",
    "bind": "User already bound",
}


@router.get("/check_device", response_model=BindingResponse)
def check_device(
    emp_id: str = Query(..., min_length=1),
    device_uuid: str = Query(..., min_length=1),
    conn: Connection = Depends(get_db_connection),
):
    status = binding_authority.check_status(conn, emp_id, device_uuid)
    message = BLOCKED_MESSAGES["check"] if status == "BLOCKED" else None
    return BindingResponse(status=status, message=message)


@router.post("/bind_device", response_model=BindingResponse)
def bind_device(request: BindDeviceRequest, conn: Connection = Depends(get_db_connection)):
    status = binding_authority.bind(conn, request.emp_id, request.device_uuid, request.device_model)
    message = BLOCKED_MESSAGES["bind"] if status == "BLOCKED" else None
    return BindingResponse(status=status, message=message)
