#  Copyright 2026 Canonical Ltd.  This software is licensed under the
#  GNU Affero General Public License version 3 (see the file LICENSE).

from typing import Awaitable, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from idbridgeservicelayer.services import Collaborators, ServiceCollection


async def services(
    request: Request,
) -> ServiceCollection:
    """Dependency to return the services collection."""
    return request.state.services


class ServicesMiddleware(BaseHTTPMiddleware):
    """Injects the services in the request state."""

    def __init__(self, app: ASGIApp, collaborators: Collaborators):
        super().__init__(app)
        self.collaborators = collaborators

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        request.state.services = await ServiceCollection.produce(
            context=request.state.context, collaborators=self.collaborators
        )
        return await call_next(request)
