"""
bulk_ingest/records.py

Record types consumed by the bulk ingestion engine.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Union


class RecordKind:
    MEDIA = "media"
    USER = "user"


DEFAULT_USER_ROLE = "user"


@dataclass(frozen=True)
class MediaRecord:
    """
    One image file destined for a remote folder.
    """

    filename: str
    payload: bytes
    content_type: str = "application/octet-stream"

    @property
    def size_bytes(self) -> int:
        return len(self.payload)


@dataclass(frozen=True)
class UserRecord:
    """
    One user account row parsed from a spreadsheet.
    """

    username: str
    email: str
    phone: str
    password: str
    role: str = DEFAULT_USER_ROLE

    @property
    def identifier(self) -> str:
        return self.email or self.username

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "UserRecord":
        """
        Build a record from one parsed spreadsheet row.

        Cells are stringified and trimmed, the email is lower-cased and the
        role is always the default user role.
        """

        return cls(
            username=_cell(row.get("username")),
            email=_cell(row.get("email")).lower(),
            phone=_cell(row.get("phone")),
            password=_cell(row.get("password")),
        )

    def to_payload(self) -> dict[str, str]:
        return {
            "username": self.username,
            "email": self.email,
            "phone": self.phone,
            "password": self.password,
            "role": self.role,
        }


Record = Union[MediaRecord, UserRecord]


def _cell(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()
