#  Copyright 2026 Canonical Ltd.  This software is licensed under the
#  GNU Affero General Public License version 3 (see the file LICENSE).

from datetime import datetime
from typing import Callable

import structlog

from idbridgecommon.constants import ADMIN_PRINCIPAL, PKI_USER_MOUNT_PREFIX
from idbridgecommon.logging.security import (
    AUTHN_CERTIFICATE_REJECTED,
    SECURITY,
)
from idbridgeservicelayer.auth.identity import validate_principal
from idbridgeservicelayer.config import PKIConfig
from idbridgeservicelayer.context import Context
from idbridgeservicelayer.exceptions.catalog import (
    LookupFailedException,
    MalformedRecordException,
)
from idbridgeservicelayer.models.certificates import CertificateIdentity
from idbridgeservicelayer.services.base import Service
from idbridgeservicelayer.utils.date import utcnow
from idbridgeservicelayer.vault.api.apiclient import SecretStore
from idbridgeservicelayer.vault.api.models.exceptions import VaultException

logger = structlog.getLogger()


def pki_mount_for(principal: str, root_mount: str) -> str:
    """The PKI mount that issued the certificates of `principal`."""
    if principal == ADMIN_PRINCIPAL:
        return root_mount
    return f"{PKI_USER_MOUNT_PREFIX}/{principal}"


class RevocationValidator(Service):
    """Checks certificates against the revocation state of the Secret Store.

    Nothing is cached: every check reads the certificate record.
    """

    def __init__(
        self,
        context: Context,
        secret_store: SecretStore,
        pki_config: PKIConfig,
        clock: Callable[[], datetime] = utcnow,
    ):
        super().__init__(context)
        self.secret_store = secret_store
        self.pki_config = pki_config
        self.clock = clock

    async def certificate_is_valid(self, principal: str, serial: str) -> bool:
        """Whether the certificate `serial` of `principal` is not revoked.

        :raises LookupFailedException: if the record cannot be read.
        :raises MalformedRecordException: if the record has no usable
            revocation time.
        """
        validate_principal(principal)
        mount = pki_mount_for(principal, self.pki_config.root_mount)
        try:
            record = await self.secret_store.read(f"{mount}/cert/{serial}")
        except VaultException as e:
            logger.warning(
                "Certificate lookup failed",
                principal=principal,
                serial=serial,
                error=str(e),
            )
            raise LookupFailedException(principal, serial) from e
        if record is None:
            raise LookupFailedException(principal, serial)

        revocation_time = record.get("revocation_time")
        if not isinstance(revocation_time, int) or isinstance(
            revocation_time, bool
        ):
            raise MalformedRecordException(principal, serial)
        if revocation_time == 0:
            return True
        return revocation_time > int(self.clock().timestamp())

    async def authenticate(self, identity: CertificateIdentity) -> bool:
        """Whether `identity` may log in. Any failure means it may not."""
        try:
            valid = await self.certificate_is_valid(
                identity.principal, identity.serial
            )
        except (LookupFailedException, MalformedRecordException) as e:
            logger.info(
                AUTHN_CERTIFICATE_REJECTED,
                type=SECURITY,
                principal=identity.principal,
                serial=identity.serial,
                reason=str(e),
            )
            return False
        if not valid:
            logger.info(
                AUTHN_CERTIFICATE_REJECTED,
                type=SECURITY,
                principal=identity.principal,
                serial=identity.serial,
                reason="revoked",
            )
        return valid
