# =======================================================================================
# adms_gateway/services/user_service.py - User Management Service
# =======================================================================================
from typing import Any, Dict, List, Optional

from sqlalchemy import text
from sqlalchemy.engine import Connection

from ..database import insert_if_absent
from ..models.enums import WEB_ADMIN_SN
from ..models.schemas import WebUserUpdateRequest
from ..models.tables import biometric_users


class UserService:
    """Web-managed user fields and read access for the sync bridge.

    Email and remote-access live on every per-terminal row of a user, so an
    update here fans out across all of them.
    """

    def list_web_users(self, conn: Connection, user_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        One user by PIN, or every user that has web-managed data
        (an email or remote access).
        """
        if user_id:
            rows = conn.execute(
                text("""
                    SELECT user_id, email, name, allow_remote
                    FROM biometric_users
                    WHERE user_id = :uid
                    ORDER BY id
                """),
                {"uid": user_id},
            ).mappings().all()
        else:
            rows = conn.execute(
                text("""
                    SELECT user_id, MAX(email) AS email, MAX(name) AS name,
                           MAX(allow_remote) AS allow_remote
                    FROM biometric_users
                    WHERE (email IS NOT NULL AND email <> '') OR allow_remote = 1
                    GROUP BY user_id
                    ORDER BY user_id
                """)
            ).mappings().all()

        return [
            {
                "user_id": r["user_id"],
                "email": r["email"],
                "name": r["name"],
                "allow_remote": int(r["allow_remote"] or 0),
            }
            for r in rows
        ]

    def update_web_fields(self, conn: Connection, req: WebUserUpdateRequest) -> str:
        """
        Set email and/or allow_remote on every row of the user. A user no
        terminal has reported yet is created under the web-admin pseudo device.
        """
        fields_to_set: List[str] = []
        params: Dict[str, Any] = {"uid": req.user_id}

        if req.email is not None:
            fields_to_set.append("email = :email")
            params["email"] = req.email

        if req.allow_remote is not None:
            fields_to_set.append("allow_remote = :allow_remote")
            params["allow_remote"] = int(req.allow_remote)

        exists = conn.execute(
            text("SELECT id FROM biometric_users WHERE user_id = :uid LIMIT 1"),
            {"uid": req.user_id},
        ).first()

        if not exists:
            insert_if_absent(
                conn,
                biometric_users,
                {
                    "user_id": req.user_id,
                    "name": req.name,
                    "email": req.email or "",
                    "allow_remote": int(req.allow_remote or 0),
                    "device_sn": WEB_ADMIN_SN,
                    "role": 0,
                    "password": "",
                },
            )
            return "User created"

        if not fields_to_set:
            return "No fields to update"

        conn.execute(
            text(
                f"""
                UPDATE biometric_users
                SET {", ".join(fields_to_set)}
                WHERE user_id = :uid
                """
            ),
            params,
        )
        return "User updated"

    # ---------- bridge export ----------

    def list_all_users(self, conn: Connection) -> List[Dict[str, Any]]:
        rows = conn.execute(
            text("""
                SELECT user_id, name, role, card_number, password, email, allow_remote, device_sn
                FROM biometric_users
                ORDER BY id
            """)
        ).mappings().all()
        return [dict(r) for r in rows]

    def list_valid_fingerprints(self, conn: Connection) -> List[Dict[str, Any]]:
        rows = conn.execute(
            text("""
                SELECT user_id, finger_id, template_data
                FROM fingerprint_templates
                WHERE valid = 1
                ORDER BY id
            """)
        ).mappings().all()
        return [dict(r) for r in rows]
