#  Copyright 2026 Canonical Ltd.  This software is licensed under the
#  GNU Affero General Public License version 3 (see the file LICENSE).

from fastapi.responses import JSONResponse
from pydantic import BaseModel

from idbridgeservicelayer.exceptions.catalog import BaseExceptionDetail


class ErrorBodyResponse(BaseModel):
    kind: str = "Error"
    code: int
    message: str
    details: list[BaseExceptionDetail] | None = None


class ErrorResponse(JSONResponse):
    code: int
    message: str

    def __init__(self, details: list[BaseExceptionDetail] | None = None):
        super().__init__(
            status_code=self.code,
            content=ErrorBodyResponse(
                code=self.code, message=self.message, details=details
            ).model_dump(mode="json"),
        )


class BadRequestResponse(ErrorResponse):
    code = 400
    message = "Bad request."


class ValidationErrorResponse(ErrorResponse):
    code = 400
    message = "Invalid value."


class UnauthorizedResponse(ErrorResponse):
    code = 401
    message = "Not authenticated."


class ForbiddenResponse(ErrorResponse):
    code = 403
    message = "Forbidden."


class InternalServerErrorResponse(ErrorResponse):
    code = 500
    message = "Unexpected internal server error."

    def __init__(self):
        # Upstream failures are logged, never echoed.
        super().__init__(details=None)


class RevocationCountResponse(BaseModel):
    revoked: int
    failed: int
