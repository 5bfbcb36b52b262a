"""CLI commands for managing users, courses and access tokens."""

from __future__ import annotations

import datetime

from sqlalchemy.orm import Session

import coursework.lib.cli as click
from coursework.auth import jwt
from coursework.core import di
from coursework.model import UserRole
from coursework.storage import course as course_storage
from coursework.storage import user as user_storage


@click.group("user")
def user():
    """Manage users, courses and tokens."""
    ...


@user.command("create")
@click.argument("email")
@click.argument("name")
@click.option("--role", "-r", type=click.EnumType(UserRole), default=UserRole.Student)
@di.inject
def user_create(
    email: str,
    name: str,
    role: UserRole,
    session: Session = di.Provide["storage.persistent.session"],
) -> None:
    """Create a user.

    EMAIL is the user's email address, NAME their display name.
    """
    with session.begin():
        if user_storage.get(email=email, session=session) is not None:
            click.echo(f"Error: User with email '{email}' already exists.", err=True)
            raise SystemExit(1)
        new_user = user_storage.create(email=email, name=name, role=role, session=session)

    click.echo(f"Created user: {new_user.name}")
    click.echo(f"  ID: {new_user.user_id}")
    click.echo(f"  Email: {new_user.email}")
    click.echo(f"  Role: {new_user.role.value}")


@user.command("create-course")
@click.argument("title")
@click.argument("instructor_email")
@di.inject
def user_create_course(
    title: str,
    instructor_email: str,
    session: Session = di.Provide["storage.persistent.session"],
) -> None:
    """Create a course taught by the user with INSTRUCTOR_EMAIL."""
    with session.begin():
        instructor = user_storage.get(email=instructor_email, session=session)
        if instructor is None:
            click.echo(f"Error: User '{instructor_email}' not found.", err=True)
            raise SystemExit(1)
        if instructor.role is UserRole.Student:
            click.echo(f"Error: '{instructor_email}' is a student and cannot teach a course.", err=True)
            raise SystemExit(1)
        course = course_storage.create(title=title, instructor_id=instructor.user_id, session=session)

    click.echo(f"Created course: {course.title}")
    click.echo(f"  ID: {course.course_id}")
    click.echo(f"  Instructor: {instructor.name}")


@user.command("list")
@click.option("--role", "-r", type=click.EnumType(UserRole), default=None, help="Filter by role")
@di.inject
def user_list(
    role: UserRole | None,
    session: Session = di.Provide["storage.persistent.session"],
) -> None:
    with session.begin():
        users = user_storage.find(role=role, session=session)

    if not users:
        click.echo("No users found.")
        return

    click.echo(f"{'ID':<30} {'Name':<25} {'Email':<30} {'Role':<10}")
    click.echo("-" * 98)
    for u in users:
        click.echo(f"{str(u.user_id):<30} {u.name:<25} {u.email:<30} {u.role.value:<10}")


@user.command("token")
@click.argument("email")
@click.option("--expires", "-e", "expire_minutes", type=click.IntRange(min=1), default=None, help="Lifetime in minutes")
@di.inject
def user_token(
    email: str,
    expire_minutes: int | None,
    session: Session = di.Provide["storage.persistent.session"],
) -> None:
    """Print a bearer token for the user with EMAIL."""
    with session.begin():
        found = user_storage.get(email=email, session=session)
    if found is None:
        click.echo(f"Error: User '{email}' not found.", err=True)
        raise SystemExit(1)

    expires_delta = datetime.timedelta(minutes=expire_minutes) if expire_minutes else None
    click.echo(jwt.create_access_token(found.user_id, found.role, expires_delta))
