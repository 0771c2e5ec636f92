#  Copyright 2026 Canonical Ltd.  This software is licensed under the
#  GNU Affero General Public License version 3 (see the file LICENSE).

"""Identity of the client certificate presented to the reverse proxy.

The proxy verifies the TLS client certificate and forwards its subject as
``CN=<name>@<domain>`` assertions, comma separated, together with the serial
of the certificate. Nothing here performs I/O.
"""

import re
from typing import Iterable

import structlog

from idbridgecommon.constants import DEFAULT_CERTIFICATE_DOMAIN
from idbridgeservicelayer.exceptions.catalog import (
    MalformedSerialException,
    ValidationException,
)

logger = structlog.getLogger()

PRINCIPAL_RE = re.compile(r"[0-9A-Za-z]+")
SERIAL_RE = re.compile(r"[0-9A-Fa-f:-]+")


def is_valid_principal(principal: str | None) -> bool:
    return (
        isinstance(principal, str)
        and PRINCIPAL_RE.fullmatch(principal) is not None
    )


def validate_principal(principal: str | None) -> str:
    """Return `principal` if it can be used in a Secret Store path.

    :raises ValidationException: if `principal` is not ASCII alphanumeric.
    """
    if not is_valid_principal(principal):
        raise ValidationException.build_for_field(
            field="principal",
            message=f"'{principal}' is not a valid principal name.",
        )
    return principal


def normalize_serial(serial: str) -> str:
    """Rewrite a serial in the colon delimited form used by the Secret Store.

    Serials already delimited by ``:`` or ``-`` are returned unchanged, bare
    ones get a ``:`` between every pair of hex digits.

    :raises MalformedSerialException: if the serial has characters other than
        hex digits and delimiters, or is bare and of odd length.
    """
    if not serial or SERIAL_RE.fullmatch(serial) is None:
        raise MalformedSerialException(serial)
    if ":" in serial or "-" in serial:
        return serial
    if len(serial) % 2 != 0:
        raise MalformedSerialException(serial)
    return ":".join(serial[i : i + 2] for i in range(0, len(serial), 2))


class CertificateIdentityParser:
    def __init__(self, domain: str = DEFAULT_CERTIFICATE_DOMAIN):
        self.domain = domain
        self._subject_re = re.compile(
            r"CN=([0-9A-Za-z]+)@" + re.escape(domain)
        )

    def parse(
        self, header_values: Iterable[str], subject_hint: str | None = ""
    ) -> str | None:
        """Return the principal asserted by the proxy, if any.

        When `subject_hint` is not empty, only an assertion for that very
        principal is accepted.
        """
        joined = ",".join(header_values)
        for fragment in joined.split(","):
            fragment = fragment.strip()
            if not fragment:
                continue
            match = self._subject_re.fullmatch(fragment)
            if match is None:
                logger.info(
                    "Discarding unrecognised certificate subject",
                    fragment=fragment,
                )
                continue
            name = match.group(1)
            if subject_hint and name != subject_hint:
                continue
            return name
        return None

