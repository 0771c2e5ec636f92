#  Copyright 2026 Canonical Ltd.  This software is licensed under the
#  GNU Affero General Public License version 3 (see the file LICENSE).

from dataclasses import dataclass
from typing import Self

from idbridgeservicelayer.auth.identity import CertificateIdentityParser
from idbridgeservicelayer.auth.tokens import TokenValidator
from idbridgeservicelayer.authz.apiclient import AuthzAdminClient
from idbridgeservicelayer.config import PKIConfig
from idbridgeservicelayer.context import Context
from idbridgeservicelayer.services.certificates import CertificatesService
from idbridgeservicelayer.services.challenges import ChallengeBroker
from idbridgeservicelayer.services.provisioning import PKIProvisioningService
from idbridgeservicelayer.services.revocation import RevocationValidator
from idbridgeservicelayer.services.users import UsersService
from idbridgeservicelayer.vault.api.apiclient import SecretStore


@dataclass
class Collaborators:
    """The long lived clients shared by all the requests."""

    pki_config: PKIConfig
    secret_store: SecretStore
    authz_client: AuthzAdminClient
    users_service: UsersService
    token_validator: TokenValidator

    async def close(self) -> None:
        """Perform all the shutdown operations for all the clients."""
        await self.secret_store.close()
        await self.authz_client.close()
        await self.users_service.close()
        await self.token_validator.close()


class ServiceCollection:
    """Provide all the services of a request."""

    # Keep them in alphabetical order, please
    certificates: CertificatesService
    challenges: ChallengeBroker
    provisioning: PKIProvisioningService
    revocation: RevocationValidator
    token_validator: TokenValidator
    users: UsersService

    @classmethod
    async def produce(
        cls, context: Context, collaborators: Collaborators
    ) -> Self:
        services = cls()
        services.users = collaborators.users_service
        services.token_validator = collaborators.token_validator
        services.revocation = RevocationValidator(
            context=context,
            secret_store=collaborators.secret_store,
            pki_config=collaborators.pki_config,
        )
        services.provisioning = PKIProvisioningService(
            context=context,
            secret_store=collaborators.secret_store,
            pki_config=collaborators.pki_config,
        )
        services.challenges = ChallengeBroker(
            context=context,
            authz_client=collaborators.authz_client,
            identity_parser=CertificateIdentityParser(
                collaborators.pki_config.domain
            ),
            revocation_validator=services.revocation,
            users_service=services.users,
            provisioning_service=services.provisioning,
        )
        services.certificates = CertificatesService(
            context=context,
            secret_store=collaborators.secret_store,
            pki_config=collaborators.pki_config,
        )
        return services
