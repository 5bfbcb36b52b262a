from __future__ import annotations

import typing as t
from pathlib import Path

import pydantic as p

from .base import BaseSettings


class StorageSettings(BaseSettings):
    persistent: PersistentSettings


class PersistentSettings(BaseSettings):
    """Exactly one backend is configured; PostgreSQL in deployed environments, SQLite for local and test runs."""

    postgresql: PostgresqlSettings | None = None
    sqlite: SqliteSettings | None = None
    echo: bool = False

    @p.model_validator(mode="after")
    def check_backend(self) -> t.Self:
        if (self.postgresql is None) == (self.sqlite is None):
            raise ValueError("configure exactly one of storage.persistent.postgresql or storage.persistent.sqlite")
        return self


class PostgresqlSettings(BaseSettings):
    host: p.IPvAnyAddress | str | None = None
    port: int = 5432
    database: str
    driver: t.Literal["postgresql+psycopg"] = "postgresql+psycopg"


class SqliteSettings(BaseSettings):
    # None means an in-memory database shared by every connection of the engine
    path: Path | None = None
    driver: t.Literal["sqlite+pysqlite"] = "sqlite+pysqlite"
