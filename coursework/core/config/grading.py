from __future__ import annotations

import typing as t

import annotated_types as ant

from .base import BaseSettings


class NotificationSettings(BaseSettings):
    backend: t.Literal["logging"] = "logging"
    batch_size: t.Annotated[int, ant.Gt(0)] = 100
    max_attempts: t.Annotated[int, ant.Gt(0)] = 5
    # deliver pending intents right after a grading request commits
    dispatch_after_commit: bool = True


class GradingSettings(BaseSettings):
    notification: NotificationSettings = NotificationSettings()
