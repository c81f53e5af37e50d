# =======================================================================================
# adms_gateway/services/binding_service.py - One Device Per Employee (mobile channel)
# =======================================================================================
import logging
from datetime import datetime
from typing import Callable

from sqlalchemy import DateTime, bindparam, text
from sqlalchemy.engine import Connection

from ..database import insert_if_absent
from ..models.enums import BindingStatus
from ..models.tables import device_bindings
from ..utils.validators import ProtocolValidator

logger = logging.getLogger(__name__)


class BindingAuthority:
    """
    Binds each employee to a single mobile install (a device UUID, not a
    terminal serial). Binding is one-shot; there is no rebind path here.
    """

    def __init__(self, clock: Callable[[], datetime] = datetime.now):
        self.clock = clock

    def check_status(self, conn: Connection, employee_id: str, device_uuid: str) -> BindingStatus:
        ProtocolValidator.require(emp_id=employee_id, device_uuid=device_uuid)

        row = conn.execute(
            text("SELECT id, device_uuid FROM device_bindings WHERE employee_id = :emp"),
            {"emp": employee_id},
        ).mappings().first()

        if not row:
            return "NEW_USER"

        if row["device_uuid"] != device_uuid:
            logger.info("Employee %s tried an unbound device", employee_id)
            return "BLOCKED"

        conn.execute(
            text("UPDATE device_bindings SET last_login = :now WHERE id = :id").bindparams(
                bindparam("now", type_=DateTime)
            ),
            {"now": self.clock(), "id": row["id"]},
        )
        return "ALLOWED"

    def bind(
        self, conn: Connection, employee_id: str, device_uuid: str, device_model: str = "Unknown"
    ) -> BindingStatus:
        ProtocolValidator.require(emp_id=employee_id, device_uuid=device_uuid)

        inserted = insert_if_absent(
            conn,
            device_bindings,
            {
                "employee_id": employee_id,
                "device_uuid": device_uuid,
                "device_model": device_model or "Unknown",
            },
        )
        if not inserted:
            return "BLOCKED"

        logger.info("Bound employee %s to device %s (%s)", employee_id, device_uuid, device_model)
        return "SUCCESS"
