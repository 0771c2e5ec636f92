#  Copyright 2026 Canonical Ltd.  This software is licensed under the
#  GNU Affero General Public License version 3 (see the file LICENSE).

from typing import Mapping

import structlog

from idbridgecommon.constants import (
    CONSENT_REMEMBER_FOR_SECONDS,
    LOGIN_REMEMBER_FOR_SECONDS,
)
from idbridgecommon.logging.security import (
    AUTHN_LOGIN_SUCCESSFUL,
    AUTHN_LOGIN_UNSUCCESSFUL,
    AUTHZ_CONSENT_GRANTED,
    SECURITY,
)
from idbridgeservicelayer.auth.identity import (
    CertificateIdentityParser,
    normalize_serial,
    validate_principal,
)
from idbridgeservicelayer.authz.apiclient import AuthzAdminClient
from idbridgeservicelayer.context import Context
from idbridgeservicelayer.exceptions.catalog import (
    BadRequestException,
    BaseExceptionDetail,
)
from idbridgeservicelayer.exceptions.constants import (
    INVALID_ARGUMENT_VIOLATION_TYPE,
    MISSING_CHALLENGE_VIOLATION_TYPE,
)
from idbridgeservicelayer.models.certificates import (
    CertificateIdentity,
    ProxyHeaders,
)
from idbridgeservicelayer.models.challenges import (
    ConsentAcceptRequest,
    ConsentResolution,
    LoginAcceptRequest,
    LoginResolution,
)
from idbridgeservicelayer.services.base import Service
from idbridgeservicelayer.services.provisioning import PKIProvisioningService
from idbridgeservicelayer.services.revocation import RevocationValidator
from idbridgeservicelayer.services.users import UsersService

logger = structlog.getLogger()


def missing_challenge(name: str) -> BadRequestException:
    return BadRequestException(
        details=[
            BaseExceptionDetail(
                type=MISSING_CHALLENGE_VIOLATION_TYPE,
                field=name,
                location="query",
                message=f"The {name} parameter is required.",
            )
        ]
    )


def unsupported_method(method: str) -> BadRequestException:
    return BadRequestException(
        details=[
            BaseExceptionDetail(
                type=INVALID_ARGUMENT_VIOLATION_TYPE,
                message=f"Method {method} is not supported.",
            )
        ]
    )


class ChallengeBroker(Service):
    """Answers the login and consent challenges of the Authz Server.

    No challenge state is kept here: the Authz Server rejects expired or
    replayed challenges, and those rejections surface as upstream failures.
    """

    def __init__(
        self,
        context: Context,
        authz_client: AuthzAdminClient,
        identity_parser: CertificateIdentityParser,
        revocation_validator: RevocationValidator,
        users_service: UsersService,
        provisioning_service: PKIProvisioningService,
    ):
        super().__init__(context)
        self.authz_client = authz_client
        self.identity_parser = identity_parser
        self.revocation_validator = revocation_validator
        self.users_service = users_service
        self.provisioning_service = provisioning_service

    async def resolve_login(
        self,
        challenge_id: str | None,
        method: str,
        form: Mapping[str, str] | None = None,
        proxy_headers: ProxyHeaders | None = None,
    ) -> LoginResolution:
        """Authenticate the user behind a login challenge.

        A skipped challenge is accepted for its subject. Otherwise a GET is
        authenticated by the client certificate and a POST by the
        ``username``/``password`` of `form`.
        """
        if not challenge_id:
            raise missing_challenge("login_challenge")
        method = method.upper()
        if method not in ("GET", "POST"):
            raise unsupported_method(method)

        login = await self.authz_client.get_login_request(challenge_id)
        if login.skip:
            principal = login.subject
            logger.debug("Login challenge skipped", principal=principal)
        elif method == "GET":
            principal = await self._authenticate_certificate(
                proxy_headers or ProxyHeaders(), login.subject
            )
        else:
            principal = await self._authenticate_password(form or {})

        if principal is None:
            logger.info(
                AUTHN_LOGIN_UNSUCCESSFUL,
                type=SECURITY,
                challenge=challenge_id,
                method=method,
            )
            return LoginResolution(authenticated=False)

        validate_principal(principal)
        completed = await self.authz_client.accept_login_request(
            challenge_id,
            LoginAcceptRequest(
                subject=principal,
                remember=False,
                remember_for=LOGIN_REMEMBER_FOR_SECONDS,
            ),
        )
        logger.info(
            AUTHN_LOGIN_SUCCESSFUL,
            type=SECURITY,
            principal=principal,
            challenge=challenge_id,
        )
        await self.provisioning_service.ensure_provisioned(principal)
        return LoginResolution(
            authenticated=True,
            principal=principal,
            redirect_to=completed.redirect_to,
        )

    async def resolve_consent(
        self, challenge_id: str | None, method: str
    ) -> ConsentResolution:
        """Grant everything that was requested, once the user agreed to it.

        Consent is given by a POST, or implied by a skipped challenge.
        """
        if not challenge_id:
            raise missing_challenge("consent_challenge")
        method = method.upper()
        if method not in ("GET", "POST"):
            raise unsupported_method(method)

        consent = await self.authz_client.get_consent_request(challenge_id)
        if not consent.skip and method != "POST":
            return ConsentResolution(granted=False)

        completed = await self.authz_client.accept_consent_request(
            challenge_id,
            ConsentAcceptRequest(
                grant_scope=consent.requested_scope,
                grant_access_token_audience=(
                    consent.requested_access_token_audience
                ),
                remember=True,
                remember_for=CONSENT_REMEMBER_FOR_SECONDS,
            ),
        )
        logger.info(
            AUTHZ_CONSENT_GRANTED,
            type=SECURITY,
            principal=consent.subject,
            challenge=challenge_id,
        )
        return ConsentResolution(
            granted=True, redirect_to=completed.redirect_to
        )

    async def _authenticate_certificate(
        self, proxy_headers: ProxyHeaders, subject_hint: str
    ) -> str | None:
        principal = self.identity_parser.parse(
            proxy_headers.identity, subject_hint
        )
        if principal is None:
            return None
        if proxy_headers.serial is None:
            logger.info("No certificate serial", principal=principal)
            return None
        identity = CertificateIdentity(
            principal=principal, serial=normalize_serial(proxy_headers.serial)
        )
        if await self.revocation_validator.authenticate(identity):
            return principal
        return None

    async def _authenticate_password(
        self, form: Mapping[str, str]
    ) -> str | None:
        username = form.get("username") or ""
        password = form.get("password") or ""
        if await self.users_service.login(username, password):
            return username
        return None
