#  Copyright 2026 Canonical Ltd.  This software is licensed under the
#  GNU Affero General Public License version 3 (see the file LICENSE).

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Identity,
    Integer,
    MetaData,
    String,
    Table,
)

METADATA = MetaData()

# The user table of the web frontend, read only.
UserTable = Table(
    "auth_user",
    METADATA,
    Column("id", Integer, Identity(), primary_key=True),
    Column("password", String(128), nullable=False),
    Column("last_login", DateTime(timezone=True), nullable=True),
    Column("username", String(150), nullable=False),
    Column("is_active", Boolean, nullable=False),
)
