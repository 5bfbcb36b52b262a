__all__ = [
    "BootConfiguration",
    "di",
    "CourseworkContainer",
    "LoggingProvider",
    "Settings",
    "Secrets",
    "TimestampProvider",
]


from . import di
from .config import Secrets, Settings
from .container import BootConfiguration, CourseworkContainer
from .provider import LoggingProvider, TimestampProvider
