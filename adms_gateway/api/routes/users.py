# =======================================================================================
# adms_gateway/api/routes/users.py - Web-Managed User Fields
# =======================================================================================
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.engine import Connection
from ...models.schemas import StatusMessageResponse, WebUser, WebUserUpdateRequest
from ...services.user_service import UserService
from ..dependencies import get_db_connection

router = APIRouter()
user_service = UserService()


@router.get("/users", response_model=List[WebUser])
def list_users(
    user_id: Optional[str] = Query(None, description="Terminal PIN"),
    conn: Connection = Depends(get_db_connection),
):
    return user_service.list_web_users(conn, user_id)


@router.post("/users", response_model=StatusMessageResponse)
def update_user(request: WebUserUpdateRequest, conn: Connection = Depends(get_db_connection)):
    """Set email / remote access on every terminal row of a user."""
    message = user_service.update_web_fields(conn, request)
    return StatusMessageResponse(status="success", message=message)
