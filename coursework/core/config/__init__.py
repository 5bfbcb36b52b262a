__all__ = [
    "AuthSettings",
    "CourseworkWebSettings",
    "GradingSettings",
    "LoggingSettings",
    "NotificationSettings",
    "Secrets",
    "Settings",
    "StorageSettings",
    "WebSettings",
]


from .grading import GradingSettings, NotificationSettings
from .logging import LoggingSettings
from .secrets import Secrets
from .settings import Settings
from .storage import StorageSettings
from .web import AuthSettings, CourseworkWebSettings, WebSettings
