#  Copyright 2026 Canonical Ltd.  This software is licensed under the
#  GNU Affero General Public License version 3 (see the file LICENSE).

"""Per-principal PKI environments.

On the first successful login of a principal the Secret Store gets:

* a PKI mount ``pki-user/<principal>`` holding an intermediate CA signed by
  the shared root mount, and a role issuing client certificates for
  ``<principal>@<domain>`` only;
* a KV mount ``kv-user/<principal>`` where issued certificates are escrowed;
* a policy per mount, granting full access to it;
* a JWT and an OIDC auth role bound to the principal, carrying both policies.

Every step can be run again. The OIDC role is written last and doubles as the
marker of a complete environment.
"""

import structlog

from idbridgecommon.constants import (
    KV_USER_MOUNT_PREFIX,
    PKI_USER_MOUNT_PREFIX,
)
from idbridgecommon.logging.security import PKI_PROVISIONED, SECURITY
from idbridgeservicelayer.auth.identity import validate_principal
from idbridgeservicelayer.config import PKIConfig
from idbridgeservicelayer.context import Context
from idbridgeservicelayer.exceptions.catalog import (
    ProvisioningFailedException,
)
from idbridgeservicelayer.services.base import Service
from idbridgeservicelayer.vault.api.apiclient import SecretStore
from idbridgeservicelayer.vault.api.models.exceptions import VaultException

FULL_CAPABILITIES = '"create", "read", "update", "delete", "list", "sudo"'

logger = structlog.getLogger()


def full_access_policy(mount: str) -> str:
    return f'path "{mount}/*" {{capabilities = [ {FULL_CAPABILITIES} ]}}'


class PKIProvisioningService(Service):
    def __init__(
        self,
        context: Context,
        secret_store: SecretStore,
        pki_config: PKIConfig,
    ):
        super().__init__(context)
        self.secret_store = secret_store
        self.pki_config = pki_config

    async def is_provisioned(self, principal: str) -> bool:
        try:
            role = await self.secret_store.read(f"auth/oidc/role/{principal}")
        except VaultException as e:
            self._failed(principal, "lookup", e)
        return role is not None

    async def ensure_provisioned(self, principal: str) -> bool:
        """Make sure the PKI environment of `principal` exists.

        Returns True when it had to be (re)created.

        :raises ValidationException: if `principal` is not a valid name.
        :raises ProvisioningFailedException: if any step fails.
        """
        validate_principal(principal)
        if await self.is_provisioned(principal):
            return False

        logger.info("Provisioning PKI environment", principal=principal)
        pki_mount = f"{PKI_USER_MOUNT_PREFIX}/{principal}"
        kv_mount = f"{KV_USER_MOUNT_PREFIX}/{principal}"
        policies = [pki_mount, kv_mount]

        await self._step(
            principal,
            "mount-pki",
            self.secret_store.mount(
                pki_mount,
                "pki",
                {"max_lease_ttl": self.pki_config.intermediate_ttl},
            ),
        )
        generated = await self._step(
            principal,
            "generate-intermediate",
            self.secret_store.write(
                f"{pki_mount}/intermediate/generate/internal",
                {"common_name": f"{principal}.{self.pki_config.domain}"},
            ),
        )
        csr = self._field(principal, "generate-intermediate", generated, "csr")
        signed = await self._step(
            principal,
            "sign-intermediate",
            self.secret_store.write(
                f"{self.pki_config.root_mount}/root/sign-intermediate",
                {
                    "csr": csr,
                    "format": "pem_bundle",
                    "ttl": self.pki_config.intermediate_ttl,
                },
            ),
        )
        certificate = self._field(
            principal, "sign-intermediate", signed, "certificate"
        )
        await self._step(
            principal,
            "set-signed",
            self.secret_store.write(
                f"{pki_mount}/intermediate/set-signed",
                {"certificate": certificate},
            ),
        )
        await self._step(
            principal,
            "issuance-role",
            self.secret_store.write(
                f"{pki_mount}/roles/{principal}",
                self._issuance_role(principal),
            ),
        )
        await self._step(
            principal,
            "pki-policy",
            self.secret_store.write(
                f"sys/policy/{pki_mount}",
                {"policy": full_access_policy(pki_mount)},
            ),
        )
        await self._step(
            principal,
            "mount-kv",
            self.secret_store.mount(
                kv_mount,
                "kv",
                {"max_lease_ttl": self.pki_config.intermediate_ttl},
            ),
        )
        await self._step(
            principal,
            "kv-policy",
            self.secret_store.write(
                f"sys/policy/{kv_mount}",
                {"policy": full_access_policy(kv_mount)},
            ),
        )
        await self._step(
            principal,
            "jwt-role",
            self.secret_store.write(
                f"auth/jwt/role/{principal}",
                {
                    "role_type": "jwt",
                    "bound_audiences": [self.pki_config.jwt_bound_audience],
                    "user_claim": "sub",
                    "bound_subject": principal,
                    "policies": policies,
                },
            ),
        )
        await self._step(
            principal,
            "oidc-role",
            self.secret_store.write(
                f"auth/oidc/role/{principal}",
                {
                    "role_type": "oidc",
                    "bound_audiences": [self.pki_config.oidc_bound_audience],
                    "allowed_redirect_uris": [
                        self.pki_config.oidc_redirect_uri
                    ],
                    "user_claim": "sub",
                    "bound_subject": principal,
                    "policies": policies,
                },
            ),
        )
        logger.info(PKI_PROVISIONED, type=SECURITY, principal=principal)
        return True

    def _issuance_role(self, principal: str) -> dict:
        return {
            "allowed_domains": [f"{principal}@{self.pki_config.domain}"],
            "allow_bare_domains": True,
            "allow_localhost": False,
            "allow_ip_sans": False,
            "enforce_hostnames": True,
            "server_flag": False,
            "client_flag": True,
            "email_protection_flag": True,
            "organization": self.pki_config.organization,
            "country": self.pki_config.country,
        }

    async def _step(self, principal: str, step: str, call):
        try:
            return await call
        except VaultException as e:
            self._failed(principal, step, e)

    def _field(self, principal: str, step: str, data, name: str) -> str:
        value = (data or {}).get(name)
        if not value:
            self._failed(principal, step, f"no {name} in the response")
        return value

    def _failed(self, principal: str, step: str, error) -> None:
        logger.error(
            "PKI provisioning failed",
            principal=principal,
            step=step,
            error=str(error),
        )
        raise ProvisioningFailedException(principal, step)
