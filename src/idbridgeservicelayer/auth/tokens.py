#  Copyright 2026 Canonical Ltd.  This software is licensed under the
#  GNU Affero General Public License version 3 (see the file LICENSE).

from abc import ABC, abstractmethod
from dataclasses import dataclass
from functools import cached_property
from typing import Any, Self

from authlib.jose import JsonWebKey, jwt, JWTClaims, KeySet
from authlib.jose.errors import BadSignatureError, JoseError
import httpx
import structlog

from idbridgeservicelayer.auth.identity import is_valid_principal
from idbridgeservicelayer.config import OIDCConfig
from idbridgeservicelayer.exceptions.catalog import (
    BaseExceptionDetail,
    UnauthorizedException,
    UpstreamUnavailableException,
)
from idbridgeservicelayer.exceptions.constants import (
    INVALID_TOKEN_VIOLATION_TYPE,
    MISSING_CREDENTIALS_VIOLATION_TYPE,
)
from idbridgeservicelayer.utils.date import utcnow

JWKS_CACHE_TTL = 3600

logger = structlog.getLogger()


def invalid_token(message: str) -> UnauthorizedException:
    return UnauthorizedException(
        details=[
            BaseExceptionDetail(
                type=INVALID_TOKEN_VIOLATION_TYPE,
                message=message,
            )
        ]
    )


@dataclass(frozen=True)
class BearerToken:
    claims: JWTClaims
    encoded: str

    _REQUIRED_FIELDS: frozenset[str] = frozenset(("aud", "iss", "sub", "exp"))

    @cached_property
    def issuer(self) -> str:
        return self.claims["iss"].rstrip("/")

    @cached_property
    def audience(self) -> list[str]:
        aud = self.claims["aud"]
        return aud if isinstance(aud, list) else [aud]

    @cached_property
    def subject(self) -> str:
        return self.claims["sub"]

    @classmethod
    def from_token(cls, encoded: str, jwks: KeySet) -> Self:
        try:
            claims = jwt.decode(encoded, jwks)
        except BadSignatureError:
            raise
        except ValueError as e:
            # No key of the set has the kid of the token.
            raise BadSignatureError(result=None) from e
        except JoseError as e:
            raise invalid_token("The bearer token cannot be decoded.") from e
        return cls(claims=claims, encoded=encoded)

    def validate(self, issuer: str, client_id: str) -> None:
        if self._REQUIRED_FIELDS - set(self.claims):
            raise invalid_token("The bearer token misses required claims.")
        if self.issuer != issuer.rstrip("/"):
            raise invalid_token("The bearer token has an unexpected issuer.")
        if client_id not in self.audience:
            raise invalid_token("The bearer token is not meant for us.")
        try:
            self.claims.validate(now=int(utcnow().timestamp()))
        except JoseError as e:
            raise invalid_token(
                "The bearer token is expired or not yet valid."
            ) from e
        if not is_valid_principal(self.subject):
            raise invalid_token("The bearer token has an invalid subject.")


class TokenValidator(ABC):
    """Turns an Authorization header into a principal."""

    @abstractmethod
    async def validate(self, authorization: str | None) -> str:
        """Return the principal the bearer token was issued to.

        :raises UnauthorizedException: if the token is missing or invalid.
        """

    async def close(self) -> None:
        pass

    @staticmethod
    def extract_bearer(authorization: str | None) -> str:
        scheme, _, token = (authorization or "").partition(" ")
        token = token.strip()
        if scheme.lower() != "bearer" or not token:
            raise UnauthorizedException(
                details=[
                    BaseExceptionDetail(
                        type=MISSING_CREDENTIALS_VIOLATION_TYPE,
                        message="A bearer token is required.",
                    )
                ]
            )
        return token


class OIDCTokenValidator(TokenValidator):
    """Validates JWT access tokens issued by the Authz Server."""

    def __init__(
        self, config: OIDCConfig, client: httpx.AsyncClient | None = None
    ):
        self.config = config
        self.client = client or httpx.AsyncClient(
            timeout=config.request_timeout
        )
        self._jwks_cache: KeySet | None = None
        self._jwks_cache_time: float = 0.0

    async def validate(self, authorization: str | None) -> str:
        encoded = self.extract_bearer(authorization)
        try:
            token = BearerToken.from_token(
                encoded, await self._get_provider_jwks()
            )
        except BadSignatureError:
            # The signing keys may have been rotated.
            try:
                token = BearerToken.from_token(
                    encoded, await self._get_provider_jwks(force_refresh=True)
                )
            except BadSignatureError as e:
                raise invalid_token(
                    "The bearer token has an invalid signature."
                ) from e
        token.validate(
            issuer=self.config.issuer, client_id=self.config.client_id
        )
        return token.subject

    async def close(self) -> None:
        await self.client.aclose()

    async def _get_provider_jwks(self, force_refresh: bool = False) -> KeySet:
        current_time = utcnow().timestamp()
        if (
            self._jwks_cache is not None
            and (current_time - self._jwks_cache_time) < JWKS_CACHE_TTL
            and not force_refresh
        ):
            return self._jwks_cache
        try:
            metadata = await self._request(
                self.config.issuer.rstrip("/")
                + "/.well-known/openid-configuration"
            )
            response = await self._request(metadata["jwks_uri"])
        except (httpx.HTTPError, KeyError, ValueError) as e:
            logger.error("Failed to retrieve the JWKS", error=str(e))
            raise UpstreamUnavailableException("the OIDC provider") from e
        key_set = JsonWebKey.import_key_set(response)
        self._jwks_cache = key_set
        self._jwks_cache_time = current_time
        return key_set

    async def _request(self, url: str) -> dict[str, Any]:
        response = await self.client.get(url=url)
        response.raise_for_status()
        return response.json()
