from sqlalchemy import select

from adms_gateway.models.schemas import SyncFingerprintRequest, SyncUserRequest
from adms_gateway.models.tables import biometric_users, fingerprint_templates
from adms_gateway.services.merge_service import MergeEngine


def _user(conn, user_id="1", device_sn="T1"):
    return conn.execute(
        select(biometric_users).where(
            biometric_users.c.user_id == user_id, biometric_users.c.device_sn == device_sn
        )
    ).mappings().one()


class TestUserMerge:
    """Partial-preserving user merge"""

    def test_insert_applies_defaults(self, conn):
        row_id, created = MergeEngine().merge_user(
            conn, SyncUserRequest(user_id="1", device_sn="T1", name="Ali")
        )
        assert created is True
        row = _user(conn)
        assert row["id"] == row_id
        assert row["name"] == "Ali"
        assert row["role"] == 0
        assert row["password"] == ""

    def test_blank_name_keeps_stored_name_and_role_updates(self, conn):
        engine = MergeEngine()
        engine.merge_user(conn, SyncUserRequest(user_id="1", device_sn="T1", name="Ali", role=0))

        _, created = engine.merge_user(conn, SyncUserRequest(user_id="1", device_sn="T1", name="", role=5))

        assert created is False
        row = _user(conn)
        assert row["name"] == "Ali"
        assert row["role"] == 5

    def test_omitted_fields_survive_resync(self, conn):
        engine = MergeEngine()
        engine.merge_user(
            conn, SyncUserRequest(user_id="1", device_sn="T1", name="Ali", card_number="998877", password="1234")
        )
        conn.execute(
            biometric_users.update().where(biometric_users.c.user_id == "1").values(email="ali@example.com")
        )

        engine.merge_user(conn, SyncUserRequest(user_id="1", device_sn="T1", name="Ali Hassan"))

        row = _user(conn)
        assert row["name"] == "Ali Hassan"
        assert row["card_number"] == "998877"
        assert row["password"] == "1234"
        assert row["email"] == "ali@example.com"

    def test_same_pin_on_two_terminals_is_two_rows(self, conn):
        engine = MergeEngine()
        engine.merge_user(conn, SyncUserRequest(user_id="1", device_sn="T1", name="Ali"))
        engine.merge_user(conn, SyncUserRequest(user_id="1", device_sn="T2", name="Ali B"))

        rows = conn.execute(select(biometric_users)).mappings().all()
        assert len(rows) == 2
        assert _user(conn, device_sn="T1")["name"] == "Ali"

    def test_numeric_pin_is_accepted(self, conn):
        request = SyncUserRequest(user_id=42, device_sn="T1", card_number=1234)
        assert request.user_id == "42"
        assert request.card_number == "1234"


class TestFingerprintMerge:
    """Last-writer-wins fingerprint merge"""

    def test_insert_derives_size(self, conn):
        _, created = MergeEngine().merge_fingerprint(
            conn, SyncFingerprintRequest(user_id="7", finger_id=1, template_data="ABCDEF", device_sn="T1")
        )
        row = conn.execute(select(fingerprint_templates)).mappings().one()
        assert created is True
        assert row["size"] == 6
        assert row["valid"] == 1

    def test_empty_payload_overwrites(self, conn):
        engine = MergeEngine()
        engine.merge_fingerprint(
            conn, SyncFingerprintRequest(user_id="7", finger_id=1, template_data="ABCDEF", device_sn="T1")
        )

        _, created = engine.merge_fingerprint(
            conn, SyncFingerprintRequest(user_id="7", finger_id=1, template_data="", device_sn="T2")
        )

        row = conn.execute(select(fingerprint_templates)).mappings().one()
        assert created is False
        assert row["template_data"] == ""
        assert row["size"] == 0
        assert row["device_sn"] == "T2"

    def test_templates_collide_across_terminals(self, conn):
        engine = MergeEngine()
        engine.merge_fingerprint(conn, SyncFingerprintRequest(user_id="7", finger_id=1, template_data="AAA", device_sn="T1"))
        engine.merge_fingerprint(conn, SyncFingerprintRequest(user_id="7", finger_id=1, template_data="BBBB", device_sn="T2", valid=0))

        rows = conn.execute(select(fingerprint_templates)).mappings().all()
        assert len(rows) == 1
        assert rows[0]["template_data"] == "BBBB"
        assert rows[0]["valid"] == 0

    def test_missing_device_is_unknown(self, conn):
        MergeEngine().merge_fingerprint(conn, SyncFingerprintRequest(user_id="7", finger_id=2, template_data="X"))
        row = conn.execute(select(fingerprint_templates)).mappings().one()
        assert row["device_sn"] == "UNKNOWN"
