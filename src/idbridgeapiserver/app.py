#  Copyright 2026 Canonical Ltd.  This software is licensed under the
#  GNU Affero General Public License version 3 (see the file LICENSE).

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
import re

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
import structlog
import uvicorn
from uvicorn.config import HTTPProtocolType

from idbridgeapiserver.api.handlers import bridge_api
from idbridgeapiserver.middlewares.context import ContextMiddleware
from idbridgeapiserver.middlewares.exceptions import (
    ExceptionHandlers,
    ExceptionMiddleware,
)
from idbridgeapiserver.middlewares.services import ServicesMiddleware
from idbridgeapiserver.settings import Config
from idbridgeservicelayer.services import Collaborators

CORS_METHODS = ["GET", "PUT", "POST", "OPTIONS", "DELETE"]
CORS_HEADERS = ["Authorization", "Content-Type", "Content-Disposition"]

logger = structlog.getLogger()


def cors_origin_regex(domain: str) -> str:
    """Origins served from the certificate domain or any of its subdomains."""
    return rf"https?://([A-Za-z0-9-]+\.)*{re.escape(domain)}(:[0-9]+)?"


@dataclass
class ServerConfig:
    host: str = "127.0.0.1"
    port: int = 8088
    http: type[asyncio.Protocol] | HTTPProtocolType = "auto"


class BridgeApp:
    """The identity bridge served by uvicorn.

    The collaborators are shared by every request and closed when the
    application shuts down.
    """

    def __init__(
        self,
        config: Config,
        collaborators: Collaborators,
        server_config: ServerConfig | None = None,
    ):
        self._config = config
        self._collaborators = collaborators
        self._server_config = server_config or ServerConfig(
            host=config.host, port=config.port
        )
        self._app = self._prepare_app()
        self._server = self._prepare_server()

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI):
        yield
        logger.info("Closing the bridge clients")
        await self._collaborators.close()

    def _prepare_app(self) -> FastAPI:
        app = FastAPI(
            title="IdentityBridge",
            name="idbridge",
            # The bridge only serves browsers and the frontend.
            docs_url=None,
            redoc_url=None,
            lifespan=self._lifespan,
        )
        bridge_api(
            identity_header=self._config.identity_header,
            serial_header=self._config.serial_header,
        ).register(app.router)
        self._add_middlewares(app)
        app.add_exception_handler(
            RequestValidationError,
            ExceptionHandlers.validation_exception_handler,
        )
        return app

    def _add_middlewares(self, app: FastAPI) -> None:
        # The last one added is the first processing the request. The
        # exception middleware must run inside the context one, and CORS
        # headers must be set on error responses too.
        app.add_middleware(
            ServicesMiddleware, collaborators=self._collaborators
        )
        app.add_middleware(ExceptionMiddleware)
        app.add_middleware(ContextMiddleware)
        app.add_middleware(
            CORSMiddleware,
            allow_origin_regex=cors_origin_regex(self._config.pki.domain),
            allow_credentials=True,
            allow_methods=CORS_METHODS,
            allow_headers=CORS_HEADERS,
            expose_headers=["Content-Disposition"],
        )

    def _prepare_server(self) -> uvicorn.Server:
        server_config = uvicorn.Config(
            self._app,
            loop="asyncio",
            proxy_headers=True,
            host=self._server_config.host,
            port=self._server_config.port,
            # Logging is configured outside uvicorn, to use the JSON formatter.
            log_config=None,
            http=self._server_config.http,
        )
        return uvicorn.Server(server_config)

    @property
    def fastapi_app(self) -> FastAPI:
        return self._app

    @property
    def server(self) -> uvicorn.Server:
        return self._server
