#  Copyright 2026 Canonical Ltd.  This software is licensed under the
#  GNU Affero General Public License version 3 (see the file LICENSE).

from dataclasses import dataclass

from sqlalchemy import make_url, URL
from sqlalchemy.ext.asyncio import create_async_engine


@dataclass
class DatabaseConfig:
    url: str

    @property
    def dsn(self) -> URL:
        return make_url(self.url)


class Database:
    def __init__(self, config: DatabaseConfig, echo: bool = False):
        self.config = config
        self.engine = create_async_engine(
            config.dsn,
            echo=echo,
            # Only a handful of lookups per login.
            pool_size=3,
        )

    async def close(self) -> None:
        await self.engine.dispose()
