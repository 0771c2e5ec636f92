#  Copyright 2026 Canonical Ltd.  This software is licensed under the
#  GNU Affero General Public License version 3 (see the file LICENSE).

from fastapi import Depends, Header
from starlette.responses import Response

from idbridgeapiserver.api.base import Handler, handler
from idbridgeapiserver.api.responses import (
    ErrorBodyResponse,
    RevocationCountResponse,
)
from idbridgeapiserver.middlewares.services import services
from idbridgeservicelayer.auth.tokens import TokenValidator
from idbridgeservicelayer.services import ServiceCollection
from idbridgeservicelayer.services.certificates import CertificatesService

PKCS12_MEDIA_TYPE = "application/x-pkcs12"
PKCS12_FILENAME = "cert.p12"


async def _certificates_for(
    services: ServiceCollection, authorization: str | None
) -> tuple[str, CertificatesService]:
    principal = await services.token_validator.validate(authorization)
    jwt = TokenValidator.extract_bearer(authorization)
    return principal, await services.certificates.for_bearer(principal, jwt)


class CertificateHandler(Handler):
    """Client certificates of the bearer of the token."""

    @handler(
        path="/cert",
        methods=["GET"],
        response_class=Response,
        responses={
            200: {
                "content": {PKCS12_MEDIA_TYPE: {}},
                "description": "A PKCS#12 bundle without password.",
            },
            401: {"model": ErrorBodyResponse},
        },
    )
    async def get_certificate(
        self,
        authorization: str | None = Header(default=None),
        services: ServiceCollection = Depends(services),  # noqa: B008
    ) -> Response:
        principal, certificates = await _certificates_for(
            services, authorization
        )
        bundle = await certificates.issue(principal)
        return Response(
            content=bundle,
            media_type=PKCS12_MEDIA_TYPE,
            headers={
                "Content-Disposition": (
                    f"attachment; filename={PKCS12_FILENAME}"
                )
            },
        )

    @handler(
        path="/cert",
        methods=["DELETE"],
        responses={
            200: {"model": RevocationCountResponse},
            401: {"model": ErrorBodyResponse},
        },
    )
    async def revoke_certificates(
        self,
        authorization: str | None = Header(default=None),
        services: ServiceCollection = Depends(services),  # noqa: B008
    ) -> RevocationCountResponse:
        principal, certificates = await _certificates_for(
            services, authorization
        )
        summary = await certificates.revoke_all(principal)
        return RevocationCountResponse(
            revoked=len(summary.revoked), failed=len(summary.failed)
        )
