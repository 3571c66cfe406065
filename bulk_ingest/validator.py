"""
bulk_ingest/validator.py

Pre-dispatch validation for user records.
"""

from __future__ import annotations

import re
from typing import Any, Sequence

from bulk_ingest.base import RowValidationError
from bulk_ingest.records import UserRecord

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 50
PASSWORD_MIN_LENGTH = 8

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class UserRecordValidator:
    """
    Checks every user record against field constraints.

    Records are evaluated independently and the complete violation list is
    returned so all problems can be corrected in one pass.
    """

    def validate(self, records: Sequence[UserRecord]) -> list[RowValidationError]:
        errors: list[RowValidationError] = []
        for position, record in enumerate(records, start=1):
            errors.extend(self.validate_record(record=record, row_number=position))
        return errors

    def validate_record(
        self,
        *,
        record: UserRecord,
        row_number: int,
    ) -> list[RowValidationError]:
        """
        Validate one record; ``row_number`` is its 1-based position.
        """

        errors: list[RowValidationError] = []

        username = record.username or ""
        if not USERNAME_MIN_LENGTH <= len(username) <= USERNAME_MAX_LENGTH:
            errors.append(
                self._error(
                    row_number=row_number,
                    column="username",
                    text=(
                        f"Username must be between {USERNAME_MIN_LENGTH} "
                        f"and {USERNAME_MAX_LENGTH} characters"
                    ),
                    value=username,
                )
            )

        if not record.email or not EMAIL_PATTERN.fullmatch(record.email):
            errors.append(
                self._error(
                    row_number=row_number,
                    column="email",
                    text="Invalid email format",
                    value=record.email,
                )
            )

        if not record.password or len(record.password) < PASSWORD_MIN_LENGTH:
            errors.append(
                self._error(
                    row_number=row_number,
                    column="password",
                    text=f"Password must be at least {PASSWORD_MIN_LENGTH} characters long",
                    value=None,
                )
            )

        if self._is_blank(record.phone):
            errors.append(
                self._error(
                    row_number=row_number,
                    column="phone",
                    text="Phone number is required",
                    value=record.phone,
                )
            )

        return errors

    @staticmethod
    def _error(
        *,
        row_number: int,
        column: str,
        text: str,
        value: str | None,
    ) -> RowValidationError:
        return RowValidationError(
            row_number=row_number,
            column=column,
            message=f"Row {row_number}: {text}",
            value=value if value else None,
        )

    @staticmethod
    def _is_blank(value: Any) -> bool:
        if value is None:
            return True
        return str(value).strip() == ""
