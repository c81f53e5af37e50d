# =======================================================================================
# adms_gateway/services/ingress_service.py - ADMS Push Ingress
# =======================================================================================
"""
What a terminal sees of the server.

Terminals cannot interpret error payloads, so every branch answers with the
plain acknowledgement (or the handshake block) no matter how much of the push
was actually stored. Each heartbeat and each attendance line runs in its own
transaction; one failure never takes the rest of the request down with it.
"""
import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from ..database import DatabaseManager, insert_if_absent
from ..models.enums import AttendanceTable
from ..models.tables import attendance_logs
from ..utils.exceptions import MalformedRecordError
from ..utils.validators import AttendanceRecord, ProtocolValidator
from .command_service import CommandDispatchQueue
from .heartbeat_service import HeartbeatTracker

logger = logging.getLogger(__name__)

ACK = "OK"

# Key=value block the firmware expects in reply to options=all
HANDSHAKE_OPTIONS = (
    ("Stamp", "9999"),
    ("OpStamp", "9999"),
    ("ErrorDelay", "60"),
    ("Delay", "30"),
    ("TransTimes", "00:00;14:05"),
    ("TransInterval", "1"),
    ("TransFlag", "1111000000"),
    ("Realtime", "1"),
    ("Encrypt", "0"),
)


def build_handshake(serial: str) -> str:
    lines = [f"GET OPTION FROM: {serial}"]
    lines += [f"{key}={value}" for key, value in HANDSHAKE_OPTIONS]
    return "".join(f"{line}\n" for line in lines)


class PushIngressService:
    """Routes /iclock traffic to the heartbeat tracker, the log store and the command queue."""

    def __init__(
        self,
        db: DatabaseManager,
        heartbeat: Optional[HeartbeatTracker] = None,
        commands: Optional[CommandDispatchQueue] = None,
    ):
        self.db = db
        self.heartbeat = heartbeat or HeartbeatTracker()
        self.commands = commands or CommandDispatchQueue()

    # ------------------------------------------------------------------
    # Heartbeat
    # ------------------------------------------------------------------
    def touch(self, serial: str, source_ip: Optional[str]) -> None:
        """Best-effort heartbeat; a store failure is logged and otherwise ignored."""
        try:
            with self.db.get_connection() as conn:
                self.heartbeat.record_contact(conn, serial, source_ip)
        except SQLAlchemyError:
            logger.exception("Heartbeat for %s could not be recorded", serial)

    # ------------------------------------------------------------------
    # /iclock/cdata
    # ------------------------------------------------------------------
    def handle_cdata(
        self,
        serial: Optional[str],
        table: Optional[str] = None,
        options: Optional[str] = None,
        body: str = "",
        source_ip: Optional[str] = None,
    ) -> str:
        ProtocolValidator.require(SN=serial)
        logger.debug("cdata from %s (%s) table=%s options=%s", serial, source_ip, table, options)

        self.touch(serial, source_ip)

        if table == AttendanceTable.ATTLOG.value:
            stored = self.ingest_attendance(serial, body)
            logger.info("ATTLOG from %s: stored %d new record(s)", serial, stored)
            return ACK

        if table == AttendanceTable.OPERLOG.value:
            return ACK

        if options == "all":
            return build_handshake(serial)

        return ACK

    def ingest_attendance(self, serial: str, body: str) -> int:
        """Store each ATTLOG line independently. Returns the number of new rows."""
        stored = 0
        for line in ProtocolValidator.iter_lines(body):
            try:
                record = ProtocolValidator.parse_attendance_line(line)
            except MalformedRecordError as e:
                logger.debug("Dropping ATTLOG line from %s: %s", serial, e)
                continue

            try:
                if self.store_attendance(serial, record):
                    stored += 1
            except SQLAlchemyError:
                logger.warning("Insert failed for ATTLOG line from %s: %r", serial, line, exc_info=True)
        return stored

    def store_attendance(self, serial: str, record: AttendanceRecord) -> bool:
        """Insert-if-absent on (device_sn, user_id, check_time); redelivery is a no-op."""
        with self.db.get_connection() as conn:
            return insert_if_absent(
                conn,
                attendance_logs,
                {
                    "device_sn": serial,
                    "user_id": record.user_id,
                    "check_time": record.check_time,
                    "status": record.status,
                    "verify_mode": record.verify_mode,
                    "work_code": record.work_code,
                },
            )

    # ------------------------------------------------------------------
    # /iclock/getrequest and /iclock/devicecmd
    # ------------------------------------------------------------------
    def handle_poll(self, serial: Optional[str], source_ip: Optional[str] = None) -> str:
        """The next queued command for `serial`, or OK. An anonymous poll just gets OK."""
        if serial is None or not serial.strip():
            return ACK
        self.touch(serial, source_ip)

        try:
            with self.db.get_connection() as conn:
                command = self.commands.claim_next(conn, serial)
        except SQLAlchemyError:
            logger.exception("Command lookup for %s failed", serial)
            return ACK
        return command or ACK

    def handle_command_result(self, serial: Optional[str], body: str, source_ip: Optional[str] = None) -> str:
        ProtocolValidator.require(SN=serial)
        self.touch(serial, source_ip)

        try:
            with self.db.get_connection() as conn:
                updated = self.commands.acknowledge(conn, serial, body)
            logger.debug("devicecmd from %s settled %d command(s)", serial, updated)
        except SQLAlchemyError:
            logger.exception("Command acknowledgement from %s failed", serial)
        return ACK

