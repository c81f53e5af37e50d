# =======================================================================================
# adms_gateway/services/heartbeat_service.py - Device Liveness
# =======================================================================================
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import DateTime, text
from sqlalchemy.engine import Connection

from ..database import insert_or_update
from ..models.enums import DeviceStatus
from ..models.tables import devices

# Fixed; the terminals' own poll delay is far below this.
ONLINE_WINDOW = timedelta(seconds=300)


def derive_status(last_activity: Optional[datetime], now: datetime) -> DeviceStatus:
    """ONLINE iff the last contact is strictly younger than the window."""
    if last_activity is None:
        return "OFFLINE"
    return "ONLINE" if now - last_activity < ONLINE_WINDOW else "OFFLINE"


class HeartbeatTracker:
    """Records terminal contacts and reports derived liveness."""

    def __init__(self, clock: Callable[[], datetime] = datetime.now):
        self.clock = clock

    def record_contact(self, conn: Connection, serial: str, source_ip: Optional[str] = None) -> None:
        """Upsert the device row; first sight creates it, later contacts refresh it."""
        now = self.clock()
        values = {
            "serial_number": serial,
            "ip_address": source_ip,
            "last_activity": now,
            "status": "ONLINE",
        }
        update = ["last_activity", "status"]
        # A poll without a known peer address keeps the last one we saw.
        if source_ip:
            update.append("ip_address")
        insert_or_update(conn, devices, values, keys=["serial_number"], update_columns=update)

    def list_devices(self, conn: Connection) -> List[Dict[str, Any]]:
        """All devices, newest activity first, with status recomputed now."""
        now = self.clock()
        rows = conn.execute(
            text("""
                SELECT id, serial_number, device_name, ip_address, last_activity
                FROM devices
                ORDER BY last_activity DESC
            """).columns(last_activity=DateTime)
        ).mappings().all()

        results: List[Dict[str, Any]] = []
        for row in rows:
            status = derive_status(row["last_activity"], now)
            results.append(
                {
                    "id": row["id"],
                    "serial_number": row["serial_number"],
                    "alias": row["device_name"] or row["serial_number"],
                    "ip_address": row["ip_address"],
                    "last_activity": row["last_activity"],
                    "status": status,
                    "state": 1 if status == "ONLINE" else 0,
                }
            )
        return results

    def get_status(self, conn: Connection, serial: str) -> DeviceStatus:
        row = conn.execute(
            text("SELECT last_activity FROM devices WHERE serial_number = :sn").columns(
                last_activity=DateTime
            ),
            {"sn": serial},
        ).mappings().first()
        if not row:
            return "OFFLINE"
        return derive_status(row["last_activity"], self.clock())
