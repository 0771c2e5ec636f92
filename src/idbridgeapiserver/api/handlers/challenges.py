#  Copyright 2026 Canonical Ltd.  This software is licensed under the
#  GNU Affero General Public License version 3 (see the file LICENSE).

from fastapi import Depends, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from starlette.responses import Response

from idbridgeapiserver.api.base import Handler, handler
from idbridgeapiserver.api.handlers.pages import load_page
from idbridgeapiserver.api.responses import ErrorBodyResponse
from idbridgeapiserver.middlewares.services import services
from idbridgeservicelayer.exceptions.catalog import (
    BaseExceptionDetail,
    ForbiddenException,
)
from idbridgeservicelayer.exceptions.constants import (
    UNEXISTING_USER_OR_INVALID_CREDENTIALS_VIOLATION_TYPE,
)
from idbridgeservicelayer.models.certificates import ProxyHeaders
from idbridgeservicelayer.services import ServiceCollection

LOGIN_PAGE = "login.html"
CONSENT_PAGE = "consent.html"


def redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url=url, status_code=302)


class LoginHandler(Handler):
    """Answers the login challenges of the Authz Server."""

    def __init__(self, identity_header: str, serial_header: str):
        self.identity_header = identity_header
        self.serial_header = serial_header

    def _proxy_headers(self, request: Request) -> ProxyHeaders:
        return ProxyHeaders(
            identity=request.headers.getlist(self.identity_header),
            serial=request.headers.get(self.serial_header),
        )

    @handler(
        path="/login",
        methods=["GET"],
        response_class=HTMLResponse,
        responses={
            200: {"description": "The password login page."},
            302: {"description": "Redirect back to the Authz Server."},
        },
    )
    async def get_login(
        self,
        request: Request,
        login_challenge: str | None = Query(default=None),
        services: ServiceCollection = Depends(services),  # noqa: B008
    ) -> Response:
        resolution = await services.challenges.resolve_login(
            login_challenge,
            "GET",
            proxy_headers=self._proxy_headers(request),
        )
        if resolution.authenticated:
            return redirect(resolution.redirect_to)
        return HTMLResponse(load_page(LOGIN_PAGE))

    @handler(
        path="/login",
        methods=["POST"],
        responses={
            302: {"description": "Redirect back to the Authz Server."},
            403: {"model": ErrorBodyResponse},
        },
    )
    async def post_login(
        self,
        request: Request,
        login_challenge: str | None = Query(default=None),
        services: ServiceCollection = Depends(services),  # noqa: B008
    ) -> Response:
        form = await request.form()
        resolution = await services.challenges.resolve_login(
            login_challenge,
            "POST",
            form={
                key: value
                for key, value in form.items()
                if isinstance(value, str)
            },
        )
        if not resolution.authenticated:
            raise ForbiddenException(
                details=[
                    BaseExceptionDetail(
                        type=UNEXISTING_USER_OR_INVALID_CREDENTIALS_VIOLATION_TYPE,
                        message="The credentials are not valid.",
                    )
                ]
            )
        return redirect(resolution.redirect_to)


class ConsentHandler(Handler):
    """Answers the consent challenges of the Authz Server."""

    @handler(
        path="/consent",
        methods=["GET"],
        response_class=HTMLResponse,
        responses={
            200: {"description": "The consent page."},
            302: {"description": "Redirect back to the Authz Server."},
        },
    )
    async def get_consent(
        self,
        consent_challenge: str | None = Query(default=None),
        services: ServiceCollection = Depends(services),  # noqa: B008
    ) -> Response:
        resolution = await services.challenges.resolve_consent(
            consent_challenge, "GET"
        )
        if resolution.granted:
            return redirect(resolution.redirect_to)
        return HTMLResponse(load_page(CONSENT_PAGE))

    @handler(
        path="/consent",
        methods=["POST"],
        responses={
            302: {"description": "Redirect back to the Authz Server."},
        },
    )
    async def post_consent(
        self,
        consent_challenge: str | None = Query(default=None),
        services: ServiceCollection = Depends(services),  # noqa: B008
    ) -> Response:
        resolution = await services.challenges.resolve_consent(
            consent_challenge, "POST"
        )
        return redirect(resolution.redirect_to)
