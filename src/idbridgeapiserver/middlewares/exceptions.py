#  Copyright 2026 Canonical Ltd.  This software is licensed under the
#  GNU Affero General Public License version 3 (see the file LICENSE).

from typing import Any, Awaitable, Callable

from fastapi.exceptions import RequestValidationError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
import structlog

from idbridgeapiserver.api.responses import (
    BadRequestResponse,
    ForbiddenResponse,
    InternalServerErrorResponse,
    UnauthorizedResponse,
    ValidationErrorResponse,
)
from idbridgecommon.logging.security import AUTHN_AUTH_FAILED, SECURITY
from idbridgeservicelayer.exceptions.catalog import (
    BadRequestException,
    BaseExceptionDetail,
    ForbiddenException,
    IssuanceFailedException,
    ProvisioningFailedException,
    UnauthorizedException,
    UpstreamUnavailableException,
    ValidationException,
)

logger = structlog.getLogger(__name__)


def _build_json_path(loc: list[Any]) -> str:
    elements: list[str] = []
    for elem in loc:
        if isinstance(elem, int) and elements:
            elements.append(f"{elements.pop()}[{elem}]")
        else:
            elements.append(str(elem))
    return ".".join(elements)


class ExceptionHandlers:
    @classmethod
    async def validation_exception_handler(
        cls, request: Request, exc: RequestValidationError
    ):
        """
        FastAPI raises a RequestValidationError for any malformed query,
        header or form parameter. Each error of `exc.errors()` carries its
        type, message and location, the first item of the location being one
        of path, query, header, cookie or body.
        """
        details: list[BaseExceptionDetail] = []
        for err in exc.errors():
            details.append(
                BaseExceptionDetail(
                    type=err["type"],
                    message=err["msg"],
                    location=str(err["loc"][0]),
                    field=_build_json_path(list(err["loc"][1:])),
                )
            )
        return ValidationErrorResponse(details=details)


class ExceptionMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        try:
            return await call_next(request)
        except BadRequestException as e:
            logger.debug(e)
            return BadRequestResponse(e.details)
        except ValidationException as e:
            logger.debug(e)
            return ValidationErrorResponse(e.details)
        except UnauthorizedException as e:
            logger.debug(e)
            logger.info(AUTHN_AUTH_FAILED, type=SECURITY)
            return UnauthorizedResponse(e.details)
        except ForbiddenException as e:
            logger.debug(e)
            return ForbiddenResponse(e.details)
        except (
            UpstreamUnavailableException,
            ProvisioningFailedException,
            IssuanceFailedException,
        ) as e:
            logger.error(str(e))
            return InternalServerErrorResponse()
        except Exception as e:
            logger.exception(e)
            return InternalServerErrorResponse()
