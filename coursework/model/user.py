import enum

from pydantic import EmailStr

from .base import WithTimestamps
from .id import UserID


class UserRole(enum.Enum):
    Student = "student"
    Instructor = "instructor"
    Admin = "admin"


class User(WithTimestamps):
    user_id: UserID
    email: EmailStr
    name: str
    role: UserRole = UserRole.Student
