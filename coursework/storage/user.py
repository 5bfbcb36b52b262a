from __future__ import annotations

import typing as t

import sqlalchemy as sqla

from coursework.core import di
from coursework.model import User, UserID, UserRole

from . import Session
from .table import users


def get(
    *,
    user_id: UserID | None = None,
    email: str | None = None,
    session: Session = di.Provide["storage.persistent.session"],
) -> User | None:
    """Get a user by ID or email.

    Exactly one of user_id or email must be provided.
    """
    if (user_id is None) == (email is None):
        raise ValueError("Exactly one of user_id or email must be provided")

    if user_id is not None:
        stmt = sqla.select(users.__table__).where(users.user_id == user_id)
    else:
        stmt = sqla.select(users.__table__).where(users.email == email)

    row = session.execute(stmt).mappings().one_or_none()
    return User(**row) if row else None


def find(
    *,
    user_ids: t.Collection[UserID] | None = None,
    role: UserRole | None = None,
    session: Session = di.Provide["storage.persistent.session"],
) -> tuple[User, ...]:
    stmt = sqla.select(users.__table__).order_by(users.name)
    if user_ids is not None:
        stmt = stmt.where(users.user_id.in_(user_ids))
    if role is not None:
        stmt = stmt.where(users.role == role)
    rows = session.execute(stmt).mappings().all()
    return tuple(User(**row) for row in rows)


def create(
    *,
    email: str,
    name: str,
    role: UserRole = UserRole.Student,
    session: Session = di.Provide["storage.persistent.session"],
) -> User:
    user_id = UserID()
    session.execute(sqla.insert(users).values(user_id=user_id, email=email, name=name, role=role))
    session.flush()
    result = get(user_id=user_id, session=session)
    assert result is not None
    return result
