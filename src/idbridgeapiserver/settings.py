#  Copyright 2026 Canonical Ltd.  This software is licensed under the
#  GNU Affero General Public License version 3 (see the file LICENSE).

from dataclasses import dataclass
import os

import structlog

from idbridgecommon.config import BridgeConfiguration
from idbridgeservicelayer.config import (
    AuthzConfig,
    OIDCConfig,
    PKIConfig,
    VaultConfig,
)

logger = structlog.getLogger()


@dataclass(frozen=True)
class Config:
    pki: PKIConfig
    vault: VaultConfig
    authz: AuthzConfig
    oidc: OIDCConfig
    host: str = "127.0.0.1"
    port: int = 8088
    identity_header: str = "x-fadalax-auth"
    serial_header: str = "x-fadalax-serial"
    database_dsn: str | None = None
    debug: bool = False
    debug_http: bool = False


def read_config(filepath: str | None = None) -> Config:
    """Build the configuration of the server from the configuration file.

    :raises formencode.Invalid: if an option has an invalid value.
    """
    with BridgeConfiguration.open(filepath) as config:
        vault_token = config.vault_token
        if not vault_token:
            vault_token = os.environ.get("VAULT_TOKEN", "")
        if not vault_token:
            logger.warning("No Vault token configured")
        return Config(
            pki=PKIConfig(
                domain=config.certificate_domain,
                organization=config.certificate_organization,
                country=config.certificate_country,
                root_mount=config.vault_root_pki_mount,
                oidc_redirect_uri=config.vault_oidc_redirect_uri,
                jwt_bound_audience=config.oidc_client_id,
            ),
            vault=VaultConfig(
                url=config.vault_url,
                token=vault_token,
                request_timeout=config.request_timeout,
            ),
            authz=AuthzConfig(
                admin_url=config.authz_admin_url,
                verify_tls=config.authz_admin_verify_tls,
                request_timeout=config.request_timeout,
            ),
            oidc=OIDCConfig(
                issuer=config.oidc_issuer,
                client_id=config.oidc_client_id,
                request_timeout=config.request_timeout,
            ),
            host=config.listen_host,
            port=config.listen_port,
            identity_header=config.identity_header,
            serial_header=config.serial_header,
            database_dsn=config.database_dsn or None,
            debug=config.debug,
            debug_http=config.debug or config.debug_http,
        )
