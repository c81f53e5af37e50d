# =======================================================================================
# adms_gateway/api/routes/iclock.py - ADMS Terminal Endpoints
# =======================================================================================
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import PlainTextResponse

from ...database import DatabaseManager
from ...services.ingress_service import PushIngressService
from ...utils.exceptions import ClientInputError
from ..dependencies import client_ip, get_db_manager

router = APIRouter()


def get_ingress(db: DatabaseManager = Depends(get_db_manager)) -> PushIngressService:
    return PushIngressService(db)


async def _read_body(request: Request) -> str:
    raw = await request.body()
    return raw.decode("utf-8", errors="ignore")


def _missing_sn(e: ClientInputError) -> PlainTextResponse:
    # Firmware has no error channel; a bare status and message is all it gets.
    return PlainTextResponse(f"ERROR: {e}", status_code=400)


@router.api_route("/cdata", methods=["GET", "POST"], response_class=PlainTextResponse)
async def cdata(
    request: Request,
    SN: Optional[str] = Query(None),
    table: Optional[str] = Query(None),
    options: Optional[str] = Query(None),
    ingress: PushIngressService = Depends(get_ingress),
):
    """Handshake, attendance pushes and operation logs from a terminal."""
    body = await _read_body(request)
    try:
        reply = await run_in_threadpool(
            ingress.handle_cdata, SN, table, options, body, client_ip(request)
        )
    except ClientInputError as e:
        return _missing_sn(e)
    return PlainTextResponse(reply)


@router.get("/getrequest", response_class=PlainTextResponse)
async def getrequest(
    request: Request,
    SN: Optional[str] = Query(None),
    ingress: PushIngressService = Depends(get_ingress),
):
    """Terminal poll: the next queued command, or OK."""
    reply = await run_in_threadpool(ingress.handle_poll, SN, client_ip(request))
    return PlainTextResponse(reply)


@router.post("/devicecmd", response_class=PlainTextResponse)
async def devicecmd(
    request: Request,
    SN: Optional[str] = Query(None),
    ingress: PushIngressService = Depends(get_ingress),
):
    """Terminal reports the outcome of delivered commands."""
    body = await _read_body(request)
    try:
        reply = await run_in_threadpool(
            ingress.handle_command_result, SN, body, client_ip(request)
        )
    except ClientInputError as e:
        return _missing_sn(e)
    return PlainTextResponse(reply)
