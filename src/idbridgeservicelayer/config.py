#  Copyright 2026 Canonical Ltd.  This software is licensed under the
#  GNU Affero General Public License version 3 (see the file LICENSE).

from dataclasses import dataclass

from idbridgecommon.constants import (
    CLIENT_CERTIFICATE_TTL,
    DEFAULT_CERTIFICATE_COUNTRY,
    DEFAULT_CERTIFICATE_DOMAIN,
    DEFAULT_CERTIFICATE_ORGANIZATION,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DEFAULT_ROOT_PKI_MOUNT,
    INTERMEDIATE_MAX_LEASE_TTL,
    OIDC_ROLE_BOUND_AUDIENCE,
)


@dataclass(frozen=True)
class PKIConfig:
    """Naming and policy of the per-principal PKI environments."""

    domain: str = DEFAULT_CERTIFICATE_DOMAIN
    organization: str = DEFAULT_CERTIFICATE_ORGANIZATION
    country: str = DEFAULT_CERTIFICATE_COUNTRY
    root_mount: str = DEFAULT_ROOT_PKI_MOUNT
    oidc_redirect_uri: str = (
        "https://vault.fadalax.tech:8200/ui/vault/auth/oidc/oidc/callback"
    )
    oidc_bound_audience: str = OIDC_ROLE_BOUND_AUDIENCE
    jwt_bound_audience: str = "fadalax-frontend"
    intermediate_ttl: str = INTERMEDIATE_MAX_LEASE_TTL
    certificate_ttl: str = CLIENT_CERTIFICATE_TTL


@dataclass(frozen=True)
class VaultConfig:
    url: str
    token: str
    request_timeout: int = DEFAULT_REQUEST_TIMEOUT_SECONDS


@dataclass(frozen=True)
class AuthzConfig:
    admin_url: str
    verify_tls: bool = True
    request_timeout: int = DEFAULT_REQUEST_TIMEOUT_SECONDS


@dataclass(frozen=True)
class OIDCConfig:
    issuer: str
    client_id: str
    request_timeout: int = DEFAULT_REQUEST_TIMEOUT_SECONDS
