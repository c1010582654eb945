# storage/dialects.py
"""Statements whose atomic phrasing depends on the backing database.

Only two operations need this: the whitelist-entry upsert keyed by
(player_id, server_name) and the guarded "consume code" update. Everything
else in the gateway is portable SQLAlchemy.
"""
from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import update
from sqlalchemy.dialects.mysql import insert as mysql_insert
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from exceptions import StorageError
from models.codes import RegistrationCode
from models.whitelist import MUTABLE_COLUMNS, WhitelistEntry

_ON_CONFLICT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def upsert_entry_statement(dialect_name: str, values: dict):
    table = WhitelistEntry.__table__
    if dialect_name in _ON_CONFLICT_INSERTS:
        stmt = _ON_CONFLICT_INSERTS[dialect_name](table).values(**values)
        return stmt.on_conflict_do_update(
            index_elements=["player_id", "server_name"],
            set_={col: stmt.excluded[col] for col in MUTABLE_COLUMNS},
        )
    if dialect_name in ("mysql", "mariadb"):
        stmt = mysql_insert(table).values(**values)
        return stmt.on_duplicate_key_update({col: stmt.inserted[col] for col in MUTABLE_COLUMNS})
    raise StorageError(f"Unsupported database dialect for upsert: {dialect_name}")


def consume_code_statement(code: str, player_id: uuid.UUID, player_name: str, now: datetime):
    # the WHERE guard is what makes consumption single-use under concurrency
    return (
        update(RegistrationCode)
        .where(
            RegistrationCode.code == code,
            RegistrationCode.used.is_(False),
            RegistrationCode.expires_at > now,
        )
        .values(used=True, used_by_id=player_id, used_by_name=player_name, used_at=now)
        .execution_options(synchronize_session=False)
    )
