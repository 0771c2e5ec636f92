#  Copyright 2026 Canonical Ltd.  This software is licensed under the
#  GNU Affero General Public License version 3 (see the file LICENSE).

from abc import ABC, abstractmethod

from django.contrib.auth.hashers import PBKDF2PasswordHasher
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
import structlog

from idbridgeservicelayer.db import Database
from idbridgeservicelayer.db.tables import UserTable
from idbridgeservicelayer.exceptions.catalog import (
    UpstreamUnavailableException,
)

logger = structlog.getLogger()


class UsersService(ABC):
    """The password user store."""

    @abstractmethod
    async def login(self, username: str, password: str) -> bool:
        """Whether `password` is the password of the active user `username`.

        An unknown user and a wrong password are indistinguishable.
        """

    async def close(self) -> None:
        pass


class DisabledUsersService(UsersService):
    """Password logins are disabled: nobody can log in."""

    async def login(self, username: str, password: str) -> bool:
        return False


class DatabaseUsersService(UsersService):
    def __init__(self, database: Database):
        self.database = database

    async def login(self, username: str, password: str) -> bool:
        if not username or not password:
            return False
        stmt = (
            select(UserTable.c.password)
            .where(UserTable.c.username == username)
            .where(UserTable.c.is_active)
        )
        try:
            async with self.database.engine.connect() as conn:
                result = await conn.execute(stmt)
                row = result.one_or_none()
        except SQLAlchemyError as e:
            logger.error("User lookup failed", error=str(e))
            raise UpstreamUnavailableException("the user database") from e
        if row is None:
            return False
        return self.check_password(password, row.password)

    @staticmethod
    def check_password(password: str, encoded: str) -> bool:
        hasher = PBKDF2PasswordHasher()
        if not encoded.startswith(f"{hasher.algorithm}$"):
            logger.warning("Unsupported password hash in the user database")
            return False
        try:
            return hasher.verify(password, encoded)
        except ValueError:
            logger.warning("Malformed password hash in the user database")
            return False

    async def close(self) -> None:
        await self.database.close()
