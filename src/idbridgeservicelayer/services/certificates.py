#  Copyright 2026 Canonical Ltd.  This software is licensed under the
#  GNU Affero General Public License version 3 (see the file LICENSE).

from typing import Self

from cryptography import x509
from cryptography.hazmat.primitives.serialization import (
    load_pem_private_key,
    NoEncryption,
    pkcs12,
)
import structlog

from idbridgecommon.constants import (
    KV_USER_MOUNT_PREFIX,
    PKI_USER_MOUNT_PREFIX,
)
from idbridgecommon.logging.security import (
    AUTHN_AUTH_SUCCESSFUL,
    CERTIFICATE_ISSUED,
    CERTIFICATE_REVOKED,
    SECURITY,
)
from idbridgeservicelayer.auth.identity import validate_principal
from idbridgeservicelayer.config import PKIConfig
from idbridgeservicelayer.context import Context
from idbridgeservicelayer.exceptions.catalog import (
    BaseExceptionDetail,
    IssuanceFailedException,
    UnauthorizedException,
    UpstreamUnavailableException,
)
from idbridgeservicelayer.exceptions.constants import (
    INVALID_TOKEN_VIOLATION_TYPE,
)
from idbridgeservicelayer.models.certificates import (
    IssuedCertificate,
    RevocationSummary,
)
from idbridgeservicelayer.services.base import Service
from idbridgeservicelayer.vault.api.apiclient import SecretStore
from idbridgeservicelayer.vault.api.models.exceptions import (
    VaultAuthenticationException,
    VaultException,
    VaultPermissionsException,
)

SECRET_STORE = "the Secret Store"

logger = structlog.getLogger()


def build_pkcs12(principal: str, issued: IssuedCertificate) -> bytes:
    """Bundle the key, the certificate and its issuer, without a password."""
    key = load_pem_private_key(issued.private_key.encode(), password=None)
    certificate = x509.load_pem_x509_certificate(issued.certificate.encode())
    issuing_ca = x509.load_pem_x509_certificate(issued.issuing_ca.encode())
    return pkcs12.serialize_key_and_certificates(
        name=principal.encode(),
        key=key,
        cert=certificate,
        cas=[issuing_ca],
        encryption_algorithm=NoEncryption(),
    )


class CertificatesService(Service):
    """Issues and revokes the client certificates of a principal."""

    def __init__(
        self,
        context: Context,
        secret_store: SecretStore,
        pki_config: PKIConfig,
    ):
        super().__init__(context)
        self.secret_store = secret_store
        self.pki_config = pki_config

    async def for_bearer(self, principal: str, jwt: str) -> Self:
        """Return a service acting with the Secret Store policies of
        `principal`, obtained with its bearer token.
        """
        validate_principal(principal)
        try:
            store = await self.secret_store.jwt_login(role=principal, jwt=jwt)
        except (
            VaultAuthenticationException,
            VaultPermissionsException,
        ) as e:
            logger.warning(
                "Secret Store login refused", principal=principal, error=str(e)
            )
            raise UnauthorizedException(
                details=[
                    BaseExceptionDetail(
                        type=INVALID_TOKEN_VIOLATION_TYPE,
                        message="The bearer token was refused.",
                    )
                ]
            ) from e
        except VaultException as e:
            logger.error(
                "Secret Store login failed", principal=principal, error=str(e)
            )
            raise UpstreamUnavailableException(SECRET_STORE) from e
        logger.info(AUTHN_AUTH_SUCCESSFUL, type=SECURITY, principal=principal)
        return self.__class__(self.context, store, self.pki_config)

    async def issue(self, principal: str) -> bytes:
        """Issue a client certificate for `principal` as a PKCS#12 bundle.

        The issued material is escrowed in the KV mount of the principal.
        Nothing is rolled back on failure.
        """
        validate_principal(principal)
        try:
            response = await self.secret_store.write(
                f"{PKI_USER_MOUNT_PREFIX}/{principal}/issue/{principal}",
                {
                    "common_name": f"{principal}@{self.pki_config.domain}",
                    "ttl": self.pki_config.certificate_ttl,
                },
            )
            issued = IssuedCertificate(**(response or {}))
            await self.secret_store.write(
                f"{KV_USER_MOUNT_PREFIX}/{principal}/{issued.serial_number}",
                response,
            )
            bundle = build_pkcs12(principal, issued)
        except (VaultException, ValueError) as e:
            logger.error(
                "Certificate issuance failed",
                principal=principal,
                error=str(e),
            )
            raise IssuanceFailedException(principal, str(e)) from e
        logger.info(
            CERTIFICATE_ISSUED,
            type=SECURITY,
            principal=principal,
            serial=issued.serial_number,
        )
        return bundle

    async def revoke_all(self, principal: str) -> RevocationSummary:
        """Revoke every certificate issued to `principal`.

        A failure to revoke one certificate does not stop the others.
        """
        validate_principal(principal)
        mount = f"{PKI_USER_MOUNT_PREFIX}/{principal}"
        try:
            serials = await self.secret_store.list(f"{mount}/certs")
        except VaultException as e:
            logger.error(
                "Listing certificates failed",
                principal=principal,
                error=str(e),
            )
            raise UpstreamUnavailableException(SECRET_STORE) from e

        summary = RevocationSummary()
        for serial in serials:
            try:
                await self.secret_store.write(
                    f"{mount}/revoke", {"serial_number": serial}
                )
            except VaultException as e:
                logger.warning(
                    "Certificate revocation failed",
                    principal=principal,
                    serial=serial,
                    error=str(e),
                )
                summary.failed.append(serial)
            else:
                logger.info(
                    CERTIFICATE_REVOKED,
                    type=SECURITY,
                    principal=principal,
                    serial=serial,
                )
                summary.revoked.append(serial)
        return summary
