# =======================================================================================
# adms_gateway/services/dashboard_service.py
# =======================================================================================

from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import DateTime, bindparam, text
from sqlalchemy.engine import Connection

from ..config import config
from ..database import insert_if_absent
from ..models.enums import MANUAL_SN, MOBILE_SN, VerifyMode
from ..models.schemas import ManualPunchRequest
from ..models.tables import attendance_logs
from ..utils.exceptions import ClientInputError
from ..utils.validators import split_check_window
from .heartbeat_service import HeartbeatTracker

DEFAULT_AREA = "Main Branch"


class DashboardService:
    """Read side for the admin dashboard, plus attendance housekeeping."""

    def __init__(self, clock: Callable[[], datetime] = datetime.now):
        self.clock = clock
        self.heartbeat = HeartbeatTracker(clock=clock)

    # ---------- helper mapping ----------

    def map_verify_type(self, device_sn: str, verify_mode: Optional[int]) -> str:
        if device_sn == MANUAL_SN:
            return "Manual"
        if verify_mode == VerifyMode.FINGER.value:
            return "Finger"
        if verify_mode == VerifyMode.FACE.value:
            return "Face"
        return "Other"

    # ---------- terminals ----------

    def list_terminals(self, conn: Connection) -> List[Dict[str, Any]]:
        terminals = self.heartbeat.list_devices(conn)
        for t in terminals:
            t["area_name"] = DEFAULT_AREA
        return terminals

    # ---------- logs ----------

    def get_transactions(
        self,
        conn: Connection,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        emp_code: Optional[str] = None,
        terminal_sn: Optional[str] = None,
        page: int = 1,
        page_size: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Attendance logs in a check-time window (today by default), newest first.

        emp_code matches the terminal PIN or the card number of any row for
        that user; "ALL" or blank disables a filter.
        """
        start, end = split_check_window(start, end, self.clock())
        page = max(page, 1)
        page_size = page_size or config.TRANSACTIONS_PAGE_SIZE

        where_clauses = ["l.check_time >= :start", "l.check_time <= :end"]
        params: Dict[str, Any] = {
            "start": start,
            "end": end,
            "limit": page_size,
            "offset": (page - 1) * page_size,
        }

        if emp_code and emp_code != "ALL":
            where_clauses.append(
                "(l.user_id = :emp OR EXISTS ("
                "SELECT 1 FROM biometric_users c WHERE c.user_id = l.user_id AND c.card_number = :emp))"
            )
            params["emp"] = emp_code

        if terminal_sn and terminal_sn != "ALL":
            where_clauses.append("l.device_sn = :sn")
            params["sn"] = terminal_sn

        # Name and card come from the row for the same terminal when there is one,
        # otherwise from the oldest row of that user.
        rows = conn.execute(
            text(
                f"""
                SELECT
                    l.id, l.device_sn, l.user_id, l.check_time, l.status,
                    l.verify_mode, l.notes, l.latitude, l.longitude, l.image_proof,
                    COALESCE(
                        (SELECT u.name FROM biometric_users u
                          WHERE u.user_id = l.user_id AND u.device_sn = l.device_sn
                            AND u.name IS NOT NULL AND u.name <> ''
                          LIMIT 1),
                        (SELECT u.name FROM biometric_users u
                          WHERE u.user_id = l.user_id AND u.name IS NOT NULL AND u.name <> ''
                          ORDER BY u.id
                          LIMIT 1)
                    ) AS real_name,
                    COALESCE(
                        (SELECT u.card_number FROM biometric_users u
                          WHERE u.user_id = l.user_id AND u.device_sn = l.device_sn
                            AND u.card_number IS NOT NULL AND u.card_number <> ''
                          LIMIT 1),
                        (SELECT u.card_number FROM biometric_users u
                          WHERE u.user_id = l.user_id
                            AND u.card_number IS NOT NULL AND u.card_number <> ''
                          ORDER BY u.id
                          LIMIT 1)
                    ) AS card_number
                FROM attendance_logs l
                WHERE {" AND ".join(where_clauses)}
                ORDER BY l.check_time DESC
                LIMIT :limit OFFSET :offset
                """
            )
            .bindparams(bindparam("start", type_=DateTime), bindparam("end", type_=DateTime))
            .columns(check_time=DateTime),
            params,
        ).mappings().all()

        results: List[Dict[str, Any]] = []
        for row in rows:
            results.append(
                {
                    "id": row["id"],
                    # A card number edited on the terminal is how sites fix PIN mismatches
                    "emp_code": row["card_number"] or row["user_id"],
                    "emp_name": row["real_name"] or f"User {row['user_id']}",
                    "punch_time": row["check_time"],
                    "punch_state": row["status"],
                    "verify_type_display": self.map_verify_type(row["device_sn"], row["verify_mode"]),
                    "terminal_sn": row["device_sn"],
                    "terminal_alias": row["notes"] or row["device_sn"],
                    "area_alias": row["notes"] or DEFAULT_AREA,
                    "latitude": row["latitude"],
                    "longitude": row["longitude"],
                    "image_proof": row["image_proof"],
                }
            )
        return results

    def get_recent_logs(self, conn: Connection, limit: int = 50) -> List[Dict[str, Any]]:
        rows = conn.execute(
            text("""
                SELECT id, device_sn, user_id, check_time, status, verify_mode, created_at
                FROM attendance_logs
                ORDER BY check_time DESC
                LIMIT :limit
            """).columns(check_time=DateTime, created_at=DateTime),
            {"limit": limit},
        ).mappings().all()
        return [dict(r) for r in rows]

    # ---------- manual / mobile punches ----------

    def record_manual_punch(self, conn: Connection, req: ManualPunchRequest) -> str:
        """Create a mobile punch, or delete a manual one when action == "delete"."""
        if req.action == "delete":
            if req.id is None:
                raise ClientInputError("Missing ID")
            deleted = conn.execute(
                text("DELETE FROM attendance_logs WHERE id = :id AND verify_mode = :mode"),
                {"id": req.id, "mode": VerifyMode.MANUAL.value},
            ).rowcount
            if not deleted:
                raise ClientInputError("Log not found or not manual")
            return "Log deleted"

        if not req.emp_code or req.punch_time is None or req.punch_state is None:
            raise ClientInputError("Missing required fields")

        values = {
            "device_sn": MOBILE_SN,
            "user_id": req.emp_code,
            "check_time": req.punch_time,
            "status": req.punch_state,
            "verify_mode": VerifyMode.MOBILE.value,
            "notes": req.area_alias or "",
            "latitude": req.latitude,
            "longitude": req.longitude,
            "image_proof": req.image_proof,
        }
        if not insert_if_absent(conn, attendance_logs, values):
            # Same punch re-submitted: refresh what the phone attached to it.
            conn.execute(
                text("""
                    UPDATE attendance_logs
                    SET notes = :notes, verify_mode = :verify_mode, latitude = :latitude,
                        longitude = :longitude, image_proof = :image_proof
                    WHERE device_sn = :device_sn AND user_id = :user_id AND check_time = :check_time
                """).bindparams(bindparam("check_time", type_=DateTime)),
                {k: v for k, v in values.items() if k != "status"},
            )
        return "Manual log created"

    # ---------- maintenance ----------

    def purge_future_logs(self, conn: Connection) -> int:
        """Delete punches stamped further in the future than the tolerance allows."""
        cutoff = self.clock() + timedelta(minutes=config.FUTURE_LOG_TOLERANCE_MINUTES)
        return conn.execute(
            text("DELETE FROM attendance_logs WHERE check_time > :cutoff").bindparams(
                bindparam("cutoff", type_=DateTime)
            ),
            {"cutoff": cutoff},
        ).rowcount
