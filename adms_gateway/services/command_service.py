# =======================================================================================
# adms_gateway/services/command_service.py - Outbound Command Queue
# =======================================================================================
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional

from sqlalchemy import DateTime, bindparam, text
from sqlalchemy.engine import Connection

from ..models.enums import CommandKind, CommandStatus
from ..utils.exceptions import MalformedRecordError
from ..utils.validators import ProtocolValidator

logger = logging.getLogger(__name__)

# How many times a poll retries when a concurrent poll claims the same row first
_CLAIM_ATTEMPTS = 3


def format_user_command(user: Mapping[str, Any]) -> str:
    fields = [
        f"PIN={user['user_id']}",
        f"Name={user['name'] or ''}",
        f"Pri={user['role'] if user['role'] is not None else 0}",
        f"Passwd={user['password'] or ''}",
        f"Card={user['card_number'] or ''}",
        "Grp=1",
    ]
    return f"{CommandKind.USER_INFO.value} " + "\t".join(fields)


def format_fingerprint_command(template: Mapping[str, Any]) -> str:
    fields = [
        f"PIN={template['user_id']}",
        f"FID={template['finger_id']}",
        f"Size={template['size']}",
        f"Valid={template['valid']}",
        f"TMP={template['template_data']}",
    ]
    return f"{CommandKind.FINGER_TEMPLATE.value} " + "\t".join(fields)


class CommandDispatchQueue:
    """Producer and consumer sides of the device_commands table."""

    def __init__(self, clock: Callable[[], datetime] = datetime.now):
        self.clock = clock

    # ------------------------------------------------------------------
    # Producer
    # ------------------------------------------------------------------
    def enqueue(self, conn: Connection, device_sn: str, commands: List[str]) -> int:
        if not commands:
            return 0
        conn.execute(
            text("""
                INSERT INTO device_commands (device_sn, command, status)
                VALUES (:sn, :cmd, 'PENDING')
            """),
            [{"sn": device_sn, "cmd": cmd} for cmd in commands],
        )
        return len(commands)

    def queue_provisioning_broadcast(self, conn: Connection, target_sn: str) -> int:
        """
        Queue every known user and every valid template for one terminal.

        This is a full restore: rows are not filtered by the terminal that
        originally reported them, so the caller picks the target deliberately.
        """
        users = conn.execute(
            text("""
                SELECT user_id, name, role, password, card_number
                FROM biometric_users
                ORDER BY id
            """)
        ).mappings().all()

        templates = conn.execute(
            text("""
                SELECT user_id, finger_id, size, valid, template_data
                FROM fingerprint_templates
                WHERE valid = 1
                ORDER BY id
            """)
        ).mappings().all()

        commands = [format_user_command(u) for u in users]
        commands += [format_fingerprint_command(t) for t in templates]
        count = self.enqueue(conn, target_sn, commands)
        logger.info("Queued %d provisioning commands for %s", count, target_sn)
        return count

    # ------------------------------------------------------------------
    # Consumer (terminal poll + acknowledgement)
    # ------------------------------------------------------------------
    def claim_next(self, conn: Connection, device_sn: str) -> Optional[str]:
        """
        Hand the oldest PENDING command for `device_sn` to the terminal as
        ``C:<id>:<command>`` and mark it SENT. Returns None when nothing is queued.
        """
        for _ in range(_CLAIM_ATTEMPTS):
            row = conn.execute(
                text("""
                    SELECT id, command
                    FROM device_commands
                    WHERE device_sn = :sn AND status = 'PENDING'
                    ORDER BY id ASC
                    LIMIT 1
                """),
                {"sn": device_sn},
            ).mappings().first()
            if not row:
                return None

            claimed = conn.execute(
                text("""
                    UPDATE device_commands
                    SET status = 'SENT', executed_at = :now
                    WHERE id = :id AND status = 'PENDING'
                """).bindparams(bindparam("now", type_=DateTime)),
                {"id": row["id"], "now": self.clock()},
            ).rowcount
            if claimed:
                logger.debug("Delivering command %s to %s", row["id"], device_sn)
                return f"C:{row['id']}:{row['command']}"
        return None

    def acknowledge(self, conn: Connection, device_sn: str, body: str) -> int:
        """
        Apply the terminal's ``ID=<id>&Return=<code>&CMD=<kind>`` result lines.
        Non-negative return codes mean success. Returns how many commands moved.
        """
        updated = 0
        for line in ProtocolValidator.iter_lines(body):
            try:
                result = ProtocolValidator.parse_command_result(line)
            except MalformedRecordError as e:
                logger.debug("Ignoring devicecmd line from %s: %s", device_sn, e)
                continue

            status: CommandStatus = "SUCCESS" if result.return_code >= 0 else "ERROR"
            updated += conn.execute(
                text("""
                    UPDATE device_commands
                    SET status = :status, return_code = :code
                    WHERE id = :id AND device_sn = :sn AND status = 'SENT'
                """),
                {"status": status, "code": result.return_code, "id": result.command_id, "sn": device_sn},
            ).rowcount
        return updated

    def list_commands(
        self, conn: Connection, device_sn: Optional[str] = None, status: Optional[str] = None,
        limit: int = 500,
    ) -> List[Dict[str, Any]]:
        where_clauses = []
        params: Dict[str, Any] = {"limit": limit}
        if device_sn:
            where_clauses.append("device_sn = :sn")
            params["sn"] = device_sn
        if status:
            where_clauses.append("status = :status")
            params["status"] = status

        where = f"WHERE {' AND '.join(where_clauses)}" if where_clauses else ""
        rows = conn.execute(
            text(f"""
                SELECT id, device_sn, command, status, return_code, created_at, executed_at
                FROM device_commands
                {where}
                ORDER BY id DESC
                LIMIT :limit
            """).columns(created_at=DateTime, executed_at=DateTime),
            params,
        ).mappings().all()
        return [dict(r) for r in rows]
