from __future__ import annotations

from dependency_injector.containers import DeclarativeContainer
from dependency_injector.providers import Configuration, Provider, Selector, Singleton

from coursework.notification.notifier import LoggingNotifier, Notifier


class NotificationContainer(DeclarativeContainer):
    config: Configuration = Configuration()

    notifier: Provider[Notifier] = Selector(
        config.backend,
        logging=Singleton(LoggingNotifier),
    )
