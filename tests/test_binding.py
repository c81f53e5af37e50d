import pytest
from sqlalchemy import select

from adms_gateway.models.tables import device_bindings
from adms_gateway.services.binding_service import BindingAuthority
from adms_gateway.utils.exceptions import ClientInputError


def _binding(conn, employee_id):
    return conn.execute(
        select(device_bindings).where(device_bindings.c.employee_id == employee_id)
    ).mappings().one()


class TestBindingAuthority:
    """One mobile device per employee"""

    def test_full_lifecycle(self, conn, clock):
        authority = BindingAuthority(clock=clock)

        assert authority.check_status(conn, "E1", "U1") == "NEW_USER"
        assert authority.bind(conn, "E1", "U1", "Pixel 8") == "SUCCESS"
        assert _binding(conn, "E1")["device_model"] == "Pixel 8"

        clock.advance(minutes=10)
        assert authority.check_status(conn, "E1", "U1") == "ALLOWED"
        first_login = _binding(conn, "E1")["last_login"]
        assert first_login == clock.now

        assert authority.check_status(conn, "E1", "U2") == "BLOCKED"
        assert authority.bind(conn, "E1", "U2") == "BLOCKED"
        assert _binding(conn, "E1")["device_uuid"] == "U1"

        clock.advance(minutes=5)
        assert authority.check_status(conn, "E1", "U1") == "ALLOWED"
        assert _binding(conn, "E1")["last_login"] > first_login

    def test_blocked_check_does_not_touch_last_login(self, conn, clock):
        authority = BindingAuthority(clock=clock)
        authority.bind(conn, "E1", "U1")
        authority.check_status(conn, "E1", "OTHER")
        assert _binding(conn, "E1")["last_login"] is None

    def test_blank_model_defaults_to_unknown(self, conn):
        BindingAuthority().bind(conn, "E2", "U9", "")
        assert _binding(conn, "E2")["device_model"] == "Unknown"

    def test_missing_identifiers(self, conn):
        authority = BindingAuthority()
        with pytest.raises(ClientInputError, match="emp_id"):
            authority.check_status(conn, "", "U1")
        with pytest.raises(ClientInputError, match="device_uuid"):
            authority.bind(conn, "E1", " ")


class TestBindingRoutes:

    def test_check_and_bind(self, client):
        assert client.get("/api/check_device", params={"emp_id": "E1", "device_uuid": "U1"}).json() == {
            "status": "NEW_USER",
            "message": None,
        }

        bound = client.post("/api/bind_device", json={"emp_id": "E1", "device_uuid": "U1", "device_model": "iPhone"})
        assert bound.json()["status"] == "SUCCESS"

        again = client.post("/api/bind_device", json={"emp_id": "E1", "device_uuid": "U2"})
        assert again.json() == {"status": "BLOCKED", "message": "User already bound"}

        other = client.get("/api/check_device", params={"emp_id": "E1", "device_uuid": "U2"})
        assert other.json() == {"status": "BLOCKED", "message": "Account linked to another device"}

        same = client.get("/api/check_device", params={"emp_id": "E1", "device_uuid": "U1"})
        assert same.json()["status"] == "ALLOWED"

    def test_missing_parameter(self, client):
        response = client.get("/api/check_device", params={"emp_id": "E1"})
        assert response.status_code == 400
        assert response.json()["status"] == "error"
        assert "device_uuid" in response.json()["message"]

    def test_bind_requires_identifiers(self, client):
        response = client.post("/api/bind_device", json={"emp_id": "E1", "device_uuid": ""})
        assert response.status_code == 400
        assert response.json()["status"] == "error"
