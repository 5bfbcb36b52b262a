from __future__ import annotations

import typing as t
from pathlib import Path

import alembic.config
import psycopg
import sqlalchemy
import sqlalchemy.event
import sqlalchemy.orm
import sqlalchemy.pool
from dependency_injector.containers import DeclarativeContainer
from dependency_injector.providers import Configuration, Container, Factory, Object, Provider, Resource, Singleton
from psycopg.types.string import StrDumper
from sqlalchemy.engine.url import URL as DSN

import coursework.lib.json as json

from ..config.secrets import PostgresqlSecrets
from ..config.storage import PersistentSettings, PostgresqlSettings, SqliteSettings
from ..di import NotReady
from ..provider import LoggingProvider


def make_dsn(settings: PersistentSettings, secrets: PostgresqlSecrets) -> DSN:
    if settings.sqlite is not None:
        return DSN.create(settings.sqlite.driver, database=str(settings.sqlite.path) if settings.sqlite.path else None)

    assert settings.postgresql is not None
    pg = settings.postgresql
    return DSN.create(
        pg.driver,
        database=pg.database,
        username=secrets.username.get_secret_value() if secrets.username else None,
        password=secrets.password.get_secret_value() if secrets.password else None,
        port=pg.port,
        host=str(pg.host) if pg.host else None,
    )


def provide_persistent_settings(
    postgresql: dict[str, t.Any] | None, sqlite: dict[str, t.Any] | None, echo: bool | None
) -> PersistentSettings:
    return PersistentSettings(
        postgresql=PostgresqlSettings(**postgresql) if postgresql else None,
        sqlite=SqliteSettings(**sqlite) if sqlite is not None else None,
        echo=bool(echo),
    )


def provide_alembic_conf(
    migration_path: Path, settings: PersistentSettings, secrets: PostgresqlSecrets, root: Path | NotReady
) -> alembic.config.Config:
    if isinstance(root, NotReady):
        raise RuntimeError("root path is unavailable")

    escaped_str = make_dsn(settings, secrets).render_as_string(hide_password=False).replace("%", "%%")

    ac = alembic.config.Config()
    ac.set_main_option("script_location", str(root / migration_path))
    ac.set_section_option("alembic", "sqlalchemy.url", escaped_str)
    ac.set_section_option("alembic", "file_template", "%%(year)d-%%(month).2d-%%(day).2d-%%(slug)s-%%(rev)s")
    return ac


def provide_engine(
    settings: PersistentSettings, secrets: PostgresqlSecrets, logging: LoggingProvider
) -> sqlalchemy.Engine:
    logger = logging.get_logger()
    dsn = make_dsn(settings, secrets)

    if settings.sqlite is not None:
        kwargs: dict[str, t.Any] = {"connect_args": {"check_same_thread": False}}
        if settings.sqlite.path is None:
            # every connection must see the same in-memory database
            kwargs["poolclass"] = sqlalchemy.pool.StaticPool
        engine = sqlalchemy.create_engine(
            dsn, echo=settings.echo, json_serializer=json.dumps, json_deserializer=json.loads, **kwargs
        )
        sqlalchemy.event.listen(engine, "connect", sqlite_connect)
        sqlalchemy.event.listen(engine, "begin", sqlite_begin)
        logger.info(
            "initialized SQLAlchemy engine",
            extra={"driver": settings.sqlite.driver, "database": str(settings.sqlite.path or ":memory:")},
        )
        return engine

    assert settings.postgresql is not None
    engine = sqlalchemy.create_engine(
        dsn, echo=settings.echo, json_serializer=json.dumps, json_deserializer=json.loads
    )
    sqlalchemy.event.listen(engine, "connect", register_path)
    sqlalchemy.event.listen(engine, "connect", register_timezone)
    logger.info(
        "initialized SQLAlchemy engine",
        extra={
            "driver": settings.postgresql.driver,
            "database": settings.postgresql.database,
            "host": settings.postgresql.host,
            "port": settings.postgresql.port,
        },
    )
    return engine


def provide_session(engine: sqlalchemy.Engine) -> sqlalchemy.orm.Session:
    """Create a new session. Caller is responsible for closing it (via di.Manage)."""
    maker = sqlalchemy.orm.sessionmaker(engine, expire_on_commit=False, autoflush=False)
    return maker(autobegin=False)


class PersistentContainer(DeclarativeContainer):
    config = Configuration()
    secrets = Configuration()
    debug: Provider[bool] = Object()
    logging: Provider[LoggingProvider] = Resource()
    root: Provider[Path | NotReady] = Object()

    settings: Provider[PersistentSettings] = Singleton(
        provide_persistent_settings,
        postgresql=config.postgresql,
        sqlite=config.sqlite,
        echo=config.echo,
    )
    alembic_config: Provider[alembic.config.Config] = Singleton(
        provide_alembic_conf,
        migration_path=Path("migrations/"),
        settings=settings,
        secrets=secrets.postgresql.as_(PostgresqlSecrets),
        root=root,
    )
    engine: Provider[sqlalchemy.Engine] = Singleton(
        provide_engine,
        settings=settings,
        secrets=secrets.postgresql.as_(PostgresqlSecrets),
        logging=logging,
    )
    session: Provider[sqlalchemy.orm.Session] = Factory(provide_session, engine=engine)


class StorageContainer(DeclarativeContainer):
    config: Provider[dict[str, t.Any]] = Configuration(strict=True)
    secrets: Provider[dict[str, t.Any]] = Configuration(strict=True)
    debug: Provider[bool] = Object()
    logging: Provider[LoggingProvider] = Resource()
    root: Provider[Path | NotReady] = Object()

    persistent: Provider[PersistentContainer] = Container(
        PersistentContainer, config=config.persistent, secrets=secrets, debug=debug, logging=logging, root=root
    )


def sqlite_connect(dbapi_conn: t.Any, _: t.Any) -> None:
    """Hand transaction control to SQLAlchemy so SAVEPOINTs work with pysqlite."""
    dbapi_conn.isolation_level = None
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def sqlite_begin(conn: sqlalchemy.Connection) -> None:
    conn.exec_driver_sql("BEGIN")


def register_path(conn: psycopg.connection.Connection[t.Any], _: t.Any) -> None:
    psycopg.adapters.register_dumper(Path, StrDumper)


def register_timezone(dbapi_conn: t.Any, _: t.Any) -> None:
    """Set connection timezone to UTC for consistent datetime handling.

    PostgreSQL TIMESTAMP WITH TIME ZONE stores timestamps in UTC but returns
    them converted to the connection's timezone.
    """
    cursor = dbapi_conn.cursor()
    cursor.execute("SET TIMEZONE TO 'UTC'")
    cursor.close()
