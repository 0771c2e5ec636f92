#  Copyright 2026 Canonical Ltd.  This software is licensed under the
#  GNU Affero General Public License version 3 (see the file LICENSE).

from typing import Self

from pydantic import BaseModel

from idbridgeservicelayer.exceptions.constants import (
    CERTIFICATE_ISSUANCE_FAILED_VIOLATION_TYPE,
    CERTIFICATE_LOOKUP_FAILED_VIOLATION_TYPE,
    INVALID_ARGUMENT_VIOLATION_TYPE,
    MALFORMED_CERTIFICATE_RECORD_VIOLATION_TYPE,
    MALFORMED_SERIAL_VIOLATION_TYPE,
    PROVIDER_COMMUNICATION_FAILED_VIOLATION_TYPE,
    PROVISIONING_FAILED_VIOLATION_TYPE,
)


class BaseExceptionDetail(BaseModel):
    type: str
    message: str
    field: str | None = None
    location: str | None = None


class BaseException(Exception):
    def __init__(
        self, message: str, details: list[BaseExceptionDetail] | None = None
    ):
        super().__init__(message)
        self.details = details


class BadRequestException(BaseException):
    def __init__(self, details: list[BaseExceptionDetail] | None = None):
        super().__init__(
            "Invalid request. Please check the provided data.", details
        )


class UnauthorizedException(BaseException):
    def __init__(self, details: list[BaseExceptionDetail] | None = None):
        super().__init__("Not authenticated.", details)


class ForbiddenException(BaseException):
    def __init__(self, details: list[BaseExceptionDetail] | None = None):
        super().__init__("Forbidden.", details)


class ValidationException(BaseException):
    def __init__(self, details: list[BaseExceptionDetail] | None = None):
        super().__init__("Invalid value.", details)

    @classmethod
    def build_for_field(cls, field: str, message: str) -> Self:
        return cls(
            details=[
                BaseExceptionDetail(
                    type=INVALID_ARGUMENT_VIOLATION_TYPE,
                    field=field,
                    message=message,
                )
            ]
        )


class MalformedSerialException(ValidationException):
    def __init__(self, serial: str):
        super().__init__(
            details=[
                BaseExceptionDetail(
                    type=MALFORMED_SERIAL_VIOLATION_TYPE,
                    field="serial",
                    message=f"'{serial}' is not a valid certificate serial.",
                )
            ]
        )
        self.serial = serial


class UpstreamUnavailableException(BaseException):
    """An upstream service failed, timed out or answered with an error."""

    def __init__(
        self,
        upstream: str,
        details: list[BaseExceptionDetail] | None = None,
    ):
        super().__init__(
            f"Communication with {upstream} failed.",
            details
            or [
                BaseExceptionDetail(
                    type=PROVIDER_COMMUNICATION_FAILED_VIOLATION_TYPE,
                    message=f"Communication with {upstream} failed.",
                )
            ],
        )
        self.upstream = upstream


class ProvisioningFailedException(BaseException):
    def __init__(self, principal: str, step: str):
        super().__init__(
            f"Provisioning of '{principal}' failed at step '{step}'.",
            [
                BaseExceptionDetail(
                    type=PROVISIONING_FAILED_VIOLATION_TYPE,
                    message="The PKI environment could not be provisioned.",
                )
            ],
        )
        self.principal = principal
        self.step = step


class IssuanceFailedException(BaseException):
    def __init__(self, principal: str, reason: str):
        super().__init__(
            f"Issuance of a certificate for '{principal}' failed: {reason}",
            [
                BaseExceptionDetail(
                    type=CERTIFICATE_ISSUANCE_FAILED_VIOLATION_TYPE,
                    message="The certificate could not be issued.",
                )
            ],
        )
        self.principal = principal
        self.reason = reason


class LookupFailedException(BaseException):
    def __init__(self, principal: str, serial: str):
        super().__init__(
            f"Certificate {serial} of '{principal}' could not be looked up.",
            [
                BaseExceptionDetail(
                    type=CERTIFICATE_LOOKUP_FAILED_VIOLATION_TYPE,
                    message="The certificate could not be looked up.",
                )
            ],
        )
        self.principal = principal
        self.serial = serial


class MalformedRecordException(BaseException):
    def __init__(self, principal: str, serial: str):
        super().__init__(
            f"Certificate {serial} of '{principal}' has a malformed record.",
            [
                BaseExceptionDetail(
                    type=MALFORMED_CERTIFICATE_RECORD_VIOLATION_TYPE,
                    message="The certificate record is malformed.",
                )
            ],
        )
        self.principal = principal
        self.serial = serial
