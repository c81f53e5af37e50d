# =======================================================================================
# adms_gateway/utils/validators.py - Protocol Parsing Helpers
# =======================================================================================
import re
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Tuple
from urllib.parse import parse_qsl

from .exceptions import ClientInputError, MalformedRecordError

_FIELD_SPLIT = re.compile(r"\s+")
_CHECK_TIME_FORMATS = ("%Y-%m-%d %H:%M:%S", "%Y-%m-%d %H:%M", "%Y-%m-%d")


@dataclass
class AttendanceRecord:
    """One ATTLOG line: user, punch time and the terminal's state codes."""
    user_id: str
    check_time: datetime
    status: int = 0
    verify_mode: int = 1
    work_code: int = 0


@dataclass
class CommandResult:
    """One line of a /iclock/devicecmd body, e.g. ``ID=12&Return=0&CMD=DATA``."""
    command_id: int
    return_code: int
    cmd: Optional[str] = None


class ProtocolValidator:
    """Parses and validates the text the terminals push."""

    @staticmethod
    def require(**identifiers: Optional[str]) -> None:
        """Raise ClientInputError naming the first blank identifier."""
        for name, value in identifiers.items():
            if value is None or not str(value).strip():
                raise ClientInputError(f"Missing {name} parameter")

    @staticmethod
    def parse_check_time(value: str) -> datetime:
        for fmt in _CHECK_TIME_FORMATS:
            try:
                return datetime.strptime(value, fmt)
            except ValueError:
                continue
        raise MalformedRecordError(f"Unparseable check time: {value!r}")

    @staticmethod
    def _int_field(parts: List[str], index: int, default: int) -> int:
        if len(parts) <= index:
            return default
        try:
            return int(parts[index])
        except ValueError:
            raise MalformedRecordError(f"Non-numeric field {index}: {parts[index]!r}")

    @classmethod
    def parse_attendance_line(cls, line: str) -> AttendanceRecord:
        """
        Parse `<user_id> <date> <time> <status> <verify_mode> <work_code>`.
        Fields are whitespace or tab separated; the trailing three are optional.
        """
        parts = _FIELD_SPLIT.split(line.strip())
        if len(parts) < 2 or not parts[0]:
            raise MalformedRecordError(f"Too few fields: {line!r}")

        if len(parts) >= 3:
            stamp = f"{parts[1]} {parts[2]}"
        else:
            stamp = parts[1]

        return AttendanceRecord(
            user_id=parts[0],
            check_time=cls.parse_check_time(stamp),
            status=cls._int_field(parts, 3, 0),
            verify_mode=cls._int_field(parts, 4, 1),
            work_code=cls._int_field(parts, 5, 0),
        )

    @staticmethod
    def iter_lines(body: str) -> List[str]:
        """Non-blank lines of a pushed body."""
        return [line for line in body.splitlines() if line.strip()]

    @staticmethod
    def parse_command_result(line: str) -> CommandResult:
        fields = dict(parse_qsl(line.strip(), keep_blank_values=True))
        try:
            return CommandResult(
                command_id=int(fields["ID"]),
                return_code=int(fields["Return"]),
                cmd=fields.get("CMD"),
            )
        except (KeyError, ValueError):
            raise MalformedRecordError(f"Bad command result: {line!r}")


def split_check_window(
    start: Optional[datetime], end: Optional[datetime], now: datetime
) -> Tuple[datetime, datetime]:
    """Default a missing log window bound to the start/end of `now`'s day."""
    day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    day_end = now.replace(hour=23, minute=59, second=59, microsecond=0)
    return (start or day_start, end or day_end)
