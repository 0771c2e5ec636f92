#  Copyright 2026 Canonical Ltd.  This software is licensed under the
#  GNU Affero General Public License version 3 (see the file LICENSE).

from abc import ABC, abstractmethod
import asyncio
from typing import Any, Self
from urllib.parse import urljoin

from aiohttp import ClientError, ClientSession, ClientTimeout
import structlog

from idbridgeservicelayer.config import VaultConfig
from idbridgeservicelayer.vault.api.models.exceptions import (
    VaultAuthenticationException,
    VaultException,
    VaultNotFoundException,
    VaultPermissionsException,
    VaultUnreachableException,
)

MOUNT_ALREADY_IN_USE = "path is already in use"

logger = structlog.getLogger()


class SecretStore(ABC):
    """Generic access to the paths of a secret store."""

    @abstractmethod
    async def read(self, path: str) -> dict[str, Any] | None:
        """Return the data at `path`, or None when nothing is there."""

    @abstractmethod
    async def write(
        self, path: str, data: dict[str, Any]
    ) -> dict[str, Any] | None:
        """Write `data` at `path` and return the response data, if any."""

    @abstractmethod
    async def list(self, path: str) -> list[str]:
        """Return the keys under `path`; an unknown path has no keys."""

    @abstractmethod
    async def mount(
        self, path: str, type: str, config: dict[str, Any] | None = None
    ) -> bool:
        """Enable a secrets engine at `path`.

        Returns False if something was already mounted there.
        """

    @abstractmethod
    async def jwt_login(self, role: str, jwt: str) -> "SecretStore":
        """Return a store acting with the policies of the JWT `role`."""

    async def close(self) -> None:
        pass


class AsyncVaultApiClient(SecretStore):
    """Client for the Vault HTTP API, authenticating with a token."""

    def __init__(
        self,
        base_url: str,
        token: str,
        request_timeout: int,
        session: ClientSession | None = None,
    ):
        self.base_url = base_url
        self._token = token
        self._request_timeout = request_timeout
        self._session = session
        self._owns_session = session is None

    @classmethod
    def from_config(cls, config: VaultConfig) -> Self:
        return cls(
            base_url=config.url,
            token=config.token,
            request_timeout=config.request_timeout,
        )

    @staticmethod
    def build_headers_with_token(token: str) -> dict[str, str]:
        return {"X-Vault-Token": token}

    async def read(self, path: str) -> dict[str, Any] | None:
        try:
            body = await self._request("GET", path)
        except VaultNotFoundException:
            return None
        return body.get("data") if body else None

    async def write(
        self, path: str, data: dict[str, Any]
    ) -> dict[str, Any] | None:
        body = await self._request("POST", path, json=data)
        return body.get("data") if body else None

    async def list(self, path: str) -> list[str]:
        try:
            body = await self._request("LIST", path)
        except VaultNotFoundException:
            return []
        if not body:
            return []
        return body.get("data", {}).get("keys", [])

    async def mount(
        self, path: str, type: str, config: dict[str, Any] | None = None
    ) -> bool:
        request: dict[str, Any] = {"type": type}
        if config:
            request["config"] = config
        try:
            await self._request("POST", f"sys/mounts/{path}", json=request)
        except VaultException as e:
            if e.status == 400 and any(
                MOUNT_ALREADY_IN_USE in error for error in e.errors
            ):
                logger.debug("Vault mount already exists", path=path)
                return False
            raise
        return True

    async def jwt_login(self, role: str, jwt: str) -> "AsyncVaultApiClient":
        body = await self._request(
            "POST", "auth/jwt/login", json={"role": role, "jwt": jwt}
        )
        try:
            token = body["auth"]["client_token"]
        except (KeyError, TypeError) as e:
            raise VaultAuthenticationException(
                "Vault login returned no token"
            ) from e
        return AsyncVaultApiClient(
            base_url=self.base_url,
            token=token,
            request_timeout=self._request_timeout,
            session=self._get_session(),
        )

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    def _get_session(self) -> ClientSession:
        if self._session is None:
            self._session = ClientSession(
                timeout=ClientTimeout(total=self._request_timeout)
            )
        return self._session

    def _url(self, path: str) -> str:
        return urljoin(self.base_url, f"/v1/{path.lstrip('/')}")

    async def _request(
        self, method: str, path: str, json: dict[str, Any] | None = None
    ) -> dict[str, Any] | None:
        url = self._url(path)
        try:
            async with self._get_session().request(
                method,
                url,
                json=json,
                headers=self.build_headers_with_token(self._token),
                timeout=ClientTimeout(total=self._request_timeout),
            ) as response:
                if response.status == 204:
                    return None
                try:
                    body = await response.json(content_type=None)
                except ValueError:
                    if response.status >= 400:
                        self._raise_for_status(
                            method, path, response.status, None
                        )
                    raise VaultException(
                        f"{method} {path} returned a malformed body",
                        response.status,
                    )
                if response.status >= 400:
                    self._raise_for_status(method, path, response.status, body)
                return body
        except (ClientError, asyncio.TimeoutError) as e:
            raise VaultUnreachableException(
                f"{method} {path} failed: {e!r}"
            ) from e

    @staticmethod
    def _raise_for_status(method: str, path: str, status: int, body) -> None:
        errors = body.get("errors", []) if isinstance(body, dict) else []
        message = f"{method} {path} returned {status}"
        match status:
            case 401:
                raise VaultAuthenticationException(message, status, errors)
            case 403:
                raise VaultPermissionsException(message, status, errors)
            case 404:
                raise VaultNotFoundException(message, status, errors)
            case _:
                raise VaultException(message, status, errors)
