from datetime import datetime

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from adms_gateway.models.tables import attendance_logs, devices
from adms_gateway.services.ingress_service import PushIngressService, build_handshake
from adms_gateway.utils.exceptions import ClientInputError

HANDSHAKE = (
    "GET OPTION FROM: ABC\n"
    "Stamp=9999\n"
    "OpStamp=9999\n"
    "ErrorDelay=60\n"
    "Delay=30\n"
    "TransTimes=00:00;14:05\n"
    "TransInterval=1\n"
    "TransFlag=1111000000\n"
    "Realtime=1\n"
    "Encrypt=0\n"
)

ATTLOG_BODY = (
    "101\t2026-10-19 08:00:00\t0\t1\t0\n"
    "\n"
    "102 2026-10-19 08:05:00\n"
    "broken\n"
    "103\t2026-10-19 08:10:00\t1\t15\t3\n"
)


def _log_count(db):
    with db.get_connection() as conn:
        return conn.execute(select(func.count()).select_from(attendance_logs)).scalar_one()


class TestPushIngressService:
    """Routing and ingestion for /iclock/cdata"""

    def test_handshake_block(self):
        assert build_handshake("ABC") == HANDSHAKE

    def test_attlog_ingestion_skips_blank_and_malformed_lines(self, db):
        service = PushIngressService(db)
        assert service.handle_cdata("T1", table="ATTLOG", body=ATTLOG_BODY) == "OK"

        with db.get_connection() as conn:
            rows = conn.execute(select(attendance_logs).order_by(attendance_logs.c.user_id)).mappings().all()
        assert [r["user_id"] for r in rows] == ["101", "102", "103"]
        assert rows[1]["status"] == 0
        assert rows[1]["verify_mode"] == 1
        assert rows[1]["work_code"] == 0
        assert rows[2]["verify_mode"] == 15
        assert rows[2]["work_code"] == 3
        assert rows[0]["check_time"] == datetime(2026, 10, 19, 8, 0, 0)
        assert all(r["device_sn"] == "T1" for r in rows)

    def test_redelivery_does_not_duplicate(self, db):
        service = PushIngressService(db)
        service.handle_cdata("T1", table="ATTLOG", body=ATTLOG_BODY)
        service.handle_cdata("T1", table="ATTLOG", body=ATTLOG_BODY)
        assert _log_count(db) == 3

    def test_same_punch_from_another_terminal_is_kept(self, db):
        service = PushIngressService(db)
        service.handle_cdata("T1", table="ATTLOG", body="101\t2026-10-19 08:00:00\n")
        service.handle_cdata("T2", table="ATTLOG", body="101\t2026-10-19 08:00:00\n")
        assert _log_count(db) == 2

    def test_failed_line_does_not_abort_batch(self, db, monkeypatch):
        service = PushIngressService(db)
        original = service.store_attendance

        def flaky(serial, record):
            if record.user_id == "101":
                raise OperationalError("INSERT", {}, Exception("disk I/O error"))
            return original(serial, record)

        monkeypatch.setattr(service, "store_attendance", flaky)

        assert service.handle_cdata("T1", table="ATTLOG", body=ATTLOG_BODY) == "OK"
        assert _log_count(db) == 2

    def test_heartbeat_failure_does_not_block(self, db, monkeypatch):
        service = PushIngressService(db)

        def broken(conn, serial, source_ip=None):
            raise OperationalError("UPSERT", {}, Exception("locked"))

        monkeypatch.setattr(service.heartbeat, "record_contact", broken)

        assert service.handle_cdata("ABC", options="all") == HANDSHAKE

    def test_every_branch_records_contact(self, db):
        service = PushIngressService(db)
        service.handle_cdata("T1", table="OPERLOG", body="OPLOG 4\t0\t2026-10-19 08:00:00\n")
        service.handle_cdata("T2", options="all")
        service.handle_cdata("T3")

        with db.get_connection() as conn:
            serials = {r["serial_number"] for r in conn.execute(select(devices)).mappings()}
        assert serials == {"T1", "T2", "T3"}

    def test_operlog_is_not_persisted(self, db):
        service = PushIngressService(db)
        assert service.handle_cdata("T1", table="OPERLOG", body="OPLOG 4\t0\t2026-10-19 08:00:00\n") == "OK"
        assert _log_count(db) == 0

    def test_attlog_selector_wins_over_options(self, db):
        service = PushIngressService(db)
        assert service.handle_cdata("T1", table="ATTLOG", options="all", body="") == "OK"

    def test_missing_serial_is_rejected_without_side_effects(self, db):
        service = PushIngressService(db)
        with pytest.raises(ClientInputError):
            service.handle_cdata(None, options="all")
        with pytest.raises(ClientInputError):
            service.handle_cdata("", table="ATTLOG", body=ATTLOG_BODY)

        with db.get_connection() as conn:
            assert conn.execute(select(func.count()).select_from(devices)).scalar_one() == 0
        assert _log_count(db) == 0

    def test_anonymous_poll_skips_heartbeat_and_queue(self, db, monkeypatch):
        service = PushIngressService(db)

        def unexpected(conn, serial):
            raise AssertionError("queue consulted without a serial")

        monkeypatch.setattr(service.commands, "claim_next", unexpected)

        assert service.handle_poll(None) == "OK"
        assert service.handle_poll("  ") == "OK"

        with db.get_connection() as conn:
            assert conn.execute(select(func.count()).select_from(devices)).scalar_one() == 0


class TestIclockRoutes:
    """Terminal-facing HTTP surface"""

    def test_handshake_is_byte_exact(self, client):
        response = client.get("/iclock/cdata", params={"SN": "ABC", "options": "all"})
        assert response.status_code == 200
        assert response.text == HANDSHAKE
        assert response.headers["content-type"].startswith("text/plain")

    def test_attlog_post(self, client, db):
        response = client.post(
            "/iclock/cdata", params={"SN": "T1", "table": "ATTLOG"}, content=ATTLOG_BODY.encode()
        )
        assert response.status_code == 200
        assert response.text == "OK"
        assert _log_count(db) == 3

    def test_unknown_shape_acknowledged(self, client):
        response = client.get("/iclock/cdata", params={"SN": "T1", "table": "BIODATA"})
        assert response.text == "OK"

    def test_missing_serial(self, client):
        response = client.get("/iclock/cdata", params={"options": "all"})
        assert response.status_code == 400
        assert response.text.startswith("ERROR: Missing SN")

    def test_poll_without_commands(self, client):
        response = client.get("/iclock/getrequest", params={"SN": "T1"})
        assert response.status_code == 200
        assert response.text == "OK"

    def test_poll_without_serial_is_plain_ok(self, client, db):
        response = client.get("/iclock/getrequest")
        assert response.status_code == 200
        assert response.text == "OK"

        with db.get_connection() as conn:
            assert conn.execute(select(func.count()).select_from(devices)).scalar_one() == 0
