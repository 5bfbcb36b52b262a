"""Authentication utilities."""

__all__ = [
    "AuthContext",
    "JWTManager",
    "TokenData",
    "get_current_user",
    "require_instructor",
    "require_role",
    "require_student",
]

from .jwt import JWTManager, TokenData
from .middleware import AuthContext, get_current_user, require_instructor, require_role, require_student
