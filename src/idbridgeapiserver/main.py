#  Copyright 2026 Canonical Ltd.  This software is licensed under the
#  GNU Affero General Public License version 3 (see the file LICENSE).

import asyncio
import logging

import structlog

from idbridgeapiserver.app import BridgeApp
from idbridgeapiserver.settings import Config, read_config
from idbridgeservicelayer.auth.tokens import OIDCTokenValidator
from idbridgeservicelayer.authz.apiclient import AsyncHydraAdminClient
from idbridgeservicelayer.db import Database, DatabaseConfig
from idbridgeservicelayer.logging.configure import configure_logging
from idbridgeservicelayer.services import Collaborators
from idbridgeservicelayer.services.users import (
    DatabaseUsersService,
    DisabledUsersService,
    UsersService,
)
from idbridgeservicelayer.vault.api.apiclient import AsyncVaultApiClient

logger = structlog.getLogger()


def config_uvicorn_logging(level=logging.INFO) -> None:
    logging.getLogger("uvicorn.error").setLevel(level)
    logging.getLogger("uvicorn.asgi").setLevel(level)
    # The ContextMiddleware already logs every request: only log errors
    # unless debug is enabled.
    logging.getLogger("uvicorn.access").setLevel(
        logging.ERROR if level == logging.INFO else level
    )


def create_users_service(config: Config) -> UsersService:
    if not config.database_dsn:
        logger.info("No user database configured, password login disabled")
        return DisabledUsersService()
    return DatabaseUsersService(
        Database(DatabaseConfig(url=config.database_dsn))
    )


def create_collaborators(config: Config) -> Collaborators:
    return Collaborators(
        pki_config=config.pki,
        secret_store=AsyncVaultApiClient.from_config(config.vault),
        authz_client=AsyncHydraAdminClient.from_config(config.authz),
        users_service=create_users_service(config),
        token_validator=OIDCTokenValidator(config.oidc),
    )


def create_app(
    config: Config,
    # The tests inject in-memory collaborators.
    collaborators: Collaborators | None = None,
) -> BridgeApp:
    """Create the application serving the bridge."""
    if collaborators is None:
        collaborators = create_collaborators(config)
    return BridgeApp(config, collaborators)


def run(app_config: Config | None = None):
    if app_config is None:
        app_config = read_config()

    configure_logging(
        level=logging.DEBUG if app_config.debug else logging.INFO
    )
    config_uvicorn_logging(
        logging.DEBUG if app_config.debug_http else logging.INFO
    )

    loop = asyncio.new_event_loop()
    app = create_app(app_config)
    logger.info(
        "Starting the identity bridge",
        host=app_config.host,
        port=app_config.port,
    )
    loop.run_until_complete(app.server.serve())


if __name__ == "__main__":
    run()
