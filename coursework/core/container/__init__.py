__all__ = [
    "AuthContainer",
    "BootConfiguration",
    "CourseworkContainer",
    "NotificationContainer",
    "PersistentContainer",
    "StorageContainer",
]

from .auth import AuthContainer
from .coursework import BootConfiguration, CourseworkContainer
from .notification import NotificationContainer
from .storage import PersistentContainer, StorageContainer
