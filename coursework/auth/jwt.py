"""Bearer token creation and verification."""

from __future__ import annotations

import datetime
import typing as t

import annotated_types as ant
import jwt
import pydantic as p

from coursework.core import di
from coursework.model import UserID, UserRole


class TokenPayload(t.TypedDict):
    sub: str  # user_id
    role: str
    exp: int
    iat: int


class TokenData(t.NamedTuple):
    user_id: UserID
    role: UserRole
    expires_at: datetime.datetime
    issued_at: datetime.datetime


class JWTManager(object):
    """Signs and verifies access tokens. Issuing tokens to end users happens elsewhere;
    `create_access_token` serves the CLI and tests."""

    _secret_key: p.Secret[str]
    _algorithm: t.Literal["HS256"]
    _access_token_expire_minutes: t.Annotated[int, ant.Gt(1)]

    def __init__(
        self,
        secret_key: p.Secret[str],
        algorithm: t.Literal["HS256"] = "HS256",
        access_token_expire_minutes: t.Annotated[int, ant.Gt(1)] = 30,
    ) -> None:
        self._secret_key = secret_key
        self._algorithm = algorithm
        self._access_token_expire_minutes = access_token_expire_minutes

    @property
    def secret_key(self) -> str:
        return self._secret_key.get_secret_value()

    @property
    def algorithm(self) -> str:
        return self._algorithm

    def create_access_token(
        self,
        user_id: UserID,
        role: UserRole,
        expires_delta: datetime.timedelta | None = None,
    ) -> str:
        now = datetime.datetime.now(datetime.UTC)
        if expires_delta is None:
            expires_delta = datetime.timedelta(minutes=self._access_token_expire_minutes)

        payload: TokenPayload = {
            "sub": str(user_id),
            "role": role.value,
            "exp": int((now + expires_delta).timestamp()),
            "iat": int(now.timestamp()),
        }
        return jwt.encode(dict(payload), self.secret_key, algorithm=self._algorithm)

    def decode_token(self, token: str) -> TokenData | None:
        """Decode and validate a token.

        Returns:
            TokenData if valid, None if invalid, expired or naming an unknown role
        """
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self._algorithm])
            return TokenData(
                user_id=UserID(payload["sub"]),
                role=UserRole(payload["role"]),
                expires_at=datetime.datetime.fromtimestamp(payload["exp"], tz=datetime.UTC),
                issued_at=datetime.datetime.fromtimestamp(payload["iat"], tz=datetime.UTC),
            )
        except jwt.InvalidTokenError:
            return None
        except (KeyError, ValueError):
            return None


@di.inject
def decode_token(token: str, jwt_manager: JWTManager = di.Provide["auth.jwt_manager"]) -> TokenData | None:
    return jwt_manager.decode_token(token)


@di.inject
def create_access_token(
    user_id: UserID,
    role: UserRole,
    expires_delta: datetime.timedelta | None = None,
    jwt_manager: JWTManager = di.Provide["auth.jwt_manager"],
) -> str:
    return jwt_manager.create_access_token(user_id, role, expires_delta)
