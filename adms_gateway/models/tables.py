# =======================================================================================
# adms_gateway/models/tables.py - Table Definitions
# =======================================================================================
from sqlalchemy import (
    Column,
    DateTime,
    Float,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    func,
)

metadata = MetaData()

devices = Table(
    "devices",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("serial_number", String(50), nullable=False),
    Column("device_name", String(100)),
    Column("ip_address", String(45)),
    Column("last_activity", DateTime),
    # Last written flag only; consumers always get the status derived from last_activity.
    Column("status", String(10), nullable=False, server_default="OFFLINE"),
    Column("created_at", DateTime, server_default=func.now()),
    UniqueConstraint("serial_number", name="uq_devices_serial"),
)

biometric_users = Table(
    "biometric_users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", String(50), nullable=False),
    Column("name", String(100)),
    Column("role", Integer, server_default="0"),
    Column("card_number", String(50)),
    Column("password", String(50)),
    Column("email", String(150)),
    Column("allow_remote", Integer, nullable=False, server_default="0"),
    Column("device_sn", String(50)),
    Column("created_at", DateTime, server_default=func.now()),
    UniqueConstraint("user_id", "device_sn", name="uq_biometric_user_device"),
)

fingerprint_templates = Table(
    "fingerprint_templates",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", String(50), nullable=False),
    Column("finger_id", Integer, nullable=False, server_default="0"),
    Column("template_data", Text, nullable=False),
    Column("size", Integer, server_default="0"),
    Column("device_sn", String(50)),
    Column("valid", Integer, nullable=False, server_default="1"),
    Column("created_at", DateTime, server_default=func.now()),
    Column("updated_at", DateTime, server_default=func.now(), onupdate=func.now()),
    # Not scoped by device: the same finger from two terminals is one row.
    UniqueConstraint("user_id", "finger_id", name="uq_fingerprint_user_finger"),
)

attendance_logs = Table(
    "attendance_logs",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("device_sn", String(50), nullable=False),
    Column("user_id", String(50), nullable=False),
    Column("check_time", DateTime, nullable=False),
    Column("status", Integer, server_default="0"),
    Column("verify_mode", Integer, server_default="1"),
    Column("work_code", Integer, server_default="0"),
    Column("notes", Text),
    Column("latitude", Float),
    Column("longitude", Float),
    Column("image_proof", Text),
    Column("created_at", DateTime, server_default=func.now()),
    UniqueConstraint("device_sn", "user_id", "check_time", name="uq_attendance_dedup"),
    Index("ix_attendance_user", "user_id"),
    Index("ix_attendance_check_time", "check_time"),
)

device_commands = Table(
    "device_commands",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("device_sn", String(50), nullable=False),
    Column("command", Text, nullable=False),
    Column("status", String(10), nullable=False, server_default="PENDING"),
    Column("return_code", Integer),
    Column("created_at", DateTime, server_default=func.now()),
    Column("executed_at", DateTime),
    Index("ix_commands_device", "device_sn"),
    Index("ix_commands_status", "status"),
)

device_bindings = Table(
    "device_bindings",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("employee_id", String(50), nullable=False),
    Column("device_uuid", String(100), nullable=False),
    Column("device_model", String(100)),
    Column("created_at", DateTime, server_default=func.now()),
    Column("last_login", DateTime),
    UniqueConstraint("employee_id", name="uq_binding_employee"),
)
