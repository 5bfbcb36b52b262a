"""Authentication container for dependency injection."""

from __future__ import annotations

import typing as t

import pydantic as p
from dependency_injector.containers import DeclarativeContainer
from dependency_injector.providers import Configuration, Provider, Singleton

from coursework.auth import jwt as auth_jwt


def provide_jwt_manager(
    secrets: dict[str, t.Any] | None, algorithm: t.Literal["HS256"], access_token_expire_minutes: int
) -> auth_jwt.JWTManager:
    if not secrets or secrets.get("jwt") is None:
        raise RuntimeError("auth.jwt is missing from the secrets vault")
    key = secrets["jwt"]
    return auth_jwt.JWTManager(
        secret_key=key if isinstance(key, p.Secret) else p.Secret(key),
        algorithm=algorithm,
        access_token_expire_minutes=access_token_expire_minutes,
    )


class AuthContainer(DeclarativeContainer):
    """Container for authentication services."""

    config: Configuration = Configuration()
    secrets: Configuration = Configuration()

    jwt_manager: Provider[auth_jwt.JWTManager] = Singleton(
        provide_jwt_manager,
        secrets=secrets,
        algorithm=config.jwt_algorithm,
        access_token_expire_minutes=config.access_token_expire_minutes,
    )
