# =======================================================================================
# adms_gateway/services/merge_service.py - Merging Device-Reported Entities
# =======================================================================================
"""
Two deliberately different merge policies.

Users are per-terminal rows and a terminal usually reports only part of what we
know about a person, so a user merge never lets a blank field erase a stored
value. Fingerprint templates are shared across terminals and the newest
template always wins, blank payload included.
"""
from typing import Any, Dict, Optional, Tuple

from sqlalchemy import func, text
from sqlalchemy.engine import Connection

from ..database import insert_if_absent, insert_or_update
from ..models.schemas import SyncFingerprintRequest, SyncUserRequest
from ..models.tables import biometric_users, fingerprint_templates

UNKNOWN_DEVICE_SN = "UNKNOWN"

# Columns a device re-sync may update on an existing user row
MERGEABLE_USER_FIELDS = ("name", "role", "card_number", "password")


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value == "")


class UserMergeStrategy:
    """Partial-preserving upsert keyed on (user_id, device_sn)."""

    def _find_id(self, conn: Connection, user_id: str, device_sn: str) -> Optional[int]:
        row = conn.execute(
            text("SELECT id FROM biometric_users WHERE user_id = :uid AND device_sn = :sn"),
            {"uid": user_id, "sn": device_sn},
        ).mappings().first()
        return row["id"] if row else None

    def merge(self, conn: Connection, request: SyncUserRequest) -> Tuple[int, bool]:
        """
        Insert the user, or fold the non-blank incoming fields into the stored row.
        Returns (row id, created).
        """
        created = insert_if_absent(
            conn,
            biometric_users,
            {
                "user_id": request.user_id,
                "device_sn": request.device_sn,
                "name": request.name,
                "role": request.role if request.role is not None else 0,
                "card_number": request.card_number,
                "password": request.password if request.password is not None else "",
            },
        )
        if not created:
            fields_to_set = []
            params: Dict[str, Any] = {"uid": request.user_id, "sn": request.device_sn}
            for field in MERGEABLE_USER_FIELDS:
                value = getattr(request, field)
                if _is_blank(value):
                    continue
                fields_to_set.append(f"{field} = :{field}")
                params[field] = value

            if fields_to_set:
                conn.execute(
                    text(
                        f"""
                        UPDATE biometric_users
                        SET {", ".join(fields_to_set)}
                        WHERE user_id = :uid AND device_sn = :sn
                        """
                    ),
                    params,
                )

        return self._find_id(conn, request.user_id, request.device_sn), created


class FingerprintMergeStrategy:
    """Last-writer-wins upsert keyed on (user_id, finger_id), whichever terminal sent it."""

    def merge(self, conn: Connection, request: SyncFingerprintRequest) -> Tuple[int, bool]:
        """Returns (row id, created)."""
        existed = conn.execute(
            text("SELECT id FROM fingerprint_templates WHERE user_id = :uid AND finger_id = :fid"),
            {"uid": request.user_id, "fid": request.finger_id},
        ).mappings().first()

        template = request.template_data or ""
        insert_or_update(
            conn,
            fingerprint_templates,
            {
                "user_id": request.user_id,
                "finger_id": request.finger_id,
                "template_data": template,
                "size": len(template),
                "device_sn": request.device_sn or UNKNOWN_DEVICE_SN,
                "valid": request.valid,
                "updated_at": func.now(),
            },
            keys=["user_id", "finger_id"],
            update_columns=["template_data", "size", "device_sn", "valid", "updated_at"],
        )

        row = conn.execute(
            text("SELECT id FROM fingerprint_templates WHERE user_id = :uid AND finger_id = :fid"),
            {"uid": request.user_id, "fid": request.finger_id},
        ).mappings().first()
        return row["id"], existed is None


class MergeEngine:
    """Entry point used by the sync routes."""

    def __init__(self):
        self.users = UserMergeStrategy()
        self.fingerprints = FingerprintMergeStrategy()

    def merge_user(self, conn: Connection, request: SyncUserRequest) -> Tuple[int, bool]:
        return self.users.merge(conn, request)

    def merge_fingerprint(self, conn: Connection, request: SyncFingerprintRequest) -> Tuple[int, bool]:
        return self.fingerprints.merge(conn, request)
