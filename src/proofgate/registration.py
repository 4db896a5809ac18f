"""
Registration of user-entered data against a verified proof.
"""

from __future__ import annotations

import logging
from typing import Protocol

from .errors import ValidationError, VerificationFailure
from .models import RegistrationRecord, UserInfo, VerificationResult

log = logging.getLogger(__name__)


class RegistrationSink(Protocol):
    """Durable storage for registrations. Provided by the deployment."""

    def save(self, record: RegistrationRecord) -> None:
        ...


class LoggingSink:
    """Sink that only logs registrations."""

    def save(self, record: RegistrationRecord) -> None:
        log.info(
            "Registration for employee %s (%s) bound to proof %s with claim fields %s",
            record.employee_id,
            record.department,
            record.proof_identifier,
            sorted(record.extracted_claim_fields),
        )


class RegistrationCollector:
    """
    Builds RegistrationRecords and hands them to a sink.

    Submissions are not deduplicated: the same data submitted twice yields
    two independent records.

    Args:
        sink: Where records go. Default: LoggingSink
    """

    def __init__(self, sink: RegistrationSink | None = None):
        self.sink = sink if sink is not None else LoggingSink()

    @staticmethod
    def validate(user_info: UserInfo) -> None:
        """Raise ValidationError naming the first empty field."""
        for key, value in (
            ("employeeId", user_info.employee_id),
            ("department", user_info.department),
            ("name", user_info.name),
        ):
            if not value:
                raise ValidationError.missing_field(key)

    def submit(self, user_info: UserInfo, verification: VerificationResult) -> RegistrationRecord:
        """
        Register user data against a verified proof.

        Raises:
            ValidationError: If any user field is empty
            VerificationFailure: If the verdict is not a successful one
        """
        self.validate(user_info)

        if not verification.valid:
            raise VerificationFailure(verification.reason or "Proof has not been verified")

        payload = verification.payload
        record = RegistrationRecord(
            employee_id=user_info.employee_id,
            department=user_info.department,
            name=user_info.name,
            extracted_claim_fields=payload.parameters,
            proof_identifier=payload.identifier,
        )
        self.sink.save(record)
        return record
