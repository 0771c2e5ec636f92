#  Copyright 2026 Canonical Ltd.  This software is licensed under the
#  GNU Affero General Public License version 3 (see the file LICENSE).

from abc import ABC, abstractmethod
import asyncio
from typing import Any, Self
from urllib.parse import urljoin

from aiohttp import ClientError, ClientSession, ClientTimeout, TCPConnector
from pydantic import BaseModel, ValidationError
import structlog

from idbridgeservicelayer.config import AuthzConfig
from idbridgeservicelayer.exceptions.catalog import (
    UpstreamUnavailableException,
)
from idbridgeservicelayer.models.challenges import (
    CompletedRequest,
    ConsentAcceptRequest,
    ConsentChallenge,
    LoginAcceptRequest,
    LoginChallenge,
)

AUTHZ_SERVER = "the Authz Server"

LOGIN_REQUEST_PATH = "/oauth2/auth/requests/login"
LOGIN_ACCEPT_PATH = "/oauth2/auth/requests/login/accept"
CONSENT_REQUEST_PATH = "/oauth2/auth/requests/consent"
CONSENT_ACCEPT_PATH = "/oauth2/auth/requests/consent/accept"

logger = structlog.getLogger()


class AuthzAdminClient(ABC):
    """The admin API of the authorization server, as far as login and
    consent requests are concerned.

    Every method raises `UpstreamUnavailableException` when the server cannot
    be reached or rejects the call.
    """

    @abstractmethod
    async def get_login_request(self, challenge: str) -> LoginChallenge:
        pass

    @abstractmethod
    async def accept_login_request(
        self, challenge: str, request: LoginAcceptRequest
    ) -> CompletedRequest:
        pass

    @abstractmethod
    async def get_consent_request(self, challenge: str) -> ConsentChallenge:
        pass

    @abstractmethod
    async def accept_consent_request(
        self, challenge: str, request: ConsentAcceptRequest
    ) -> CompletedRequest:
        pass

    async def close(self) -> None:
        pass


class AsyncHydraAdminClient(AuthzAdminClient):
    def __init__(
        self,
        base_url: str,
        request_timeout: int,
        verify_tls: bool = True,
    ):
        self.base_url = base_url
        self._request_timeout = request_timeout
        self._verify_tls = verify_tls
        self._session: ClientSession | None = None

    @classmethod
    def from_config(cls, config: AuthzConfig) -> Self:
        return cls(
            base_url=config.admin_url,
            request_timeout=config.request_timeout,
            verify_tls=config.verify_tls,
        )

    async def get_login_request(self, challenge: str) -> LoginChallenge:
        body = await self._request(
            "GET", LOGIN_REQUEST_PATH, params={"login_challenge": challenge}
        )
        return self._parse(LoginChallenge, body)

    async def accept_login_request(
        self, challenge: str, request: LoginAcceptRequest
    ) -> CompletedRequest:
        body = await self._request(
            "PUT",
            LOGIN_ACCEPT_PATH,
            params={"login_challenge": challenge},
            json=request.model_dump(),
        )
        return self._parse(CompletedRequest, body)

    async def get_consent_request(self, challenge: str) -> ConsentChallenge:
        body = await self._request(
            "GET",
            CONSENT_REQUEST_PATH,
            params={"consent_challenge": challenge},
        )
        return self._parse(ConsentChallenge, body)

    async def accept_consent_request(
        self, challenge: str, request: ConsentAcceptRequest
    ) -> CompletedRequest:
        body = await self._request(
            "PUT",
            CONSENT_ACCEPT_PATH,
            params={"consent_challenge": challenge},
            json=request.model_dump(),
        )
        return self._parse(CompletedRequest, body)

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    @staticmethod
    def _parse(model: type[BaseModel], body: dict[str, Any]):
        try:
            return model(
                **{k: v for k, v in body.items() if v is not None}
            )
        except ValidationError as e:
            logger.error("Unexpected Authz Server response", error=str(e))
            raise UpstreamUnavailableException(AUTHZ_SERVER) from e

    def _get_session(self) -> ClientSession:
        if self._session is None:
            self._session = ClientSession(
                connector=TCPConnector(ssl=self._verify_tls),
                timeout=ClientTimeout(total=self._request_timeout),
            )
        return self._session

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        url = urljoin(self.base_url, path)
        try:
            async with self._get_session().request(
                method,
                url,
                params=params,
                json=json,
                timeout=ClientTimeout(total=self._request_timeout),
            ) as response:
                response.raise_for_status()
                body = await response.json()
        except (ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.error(
                "Authz Server request failed",
                method=method,
                path=path,
                error=str(e),
            )
            raise UpstreamUnavailableException(AUTHZ_SERVER) from e
        if not isinstance(body, dict):
            raise UpstreamUnavailableException(AUTHZ_SERVER)
        return body
