import os
import typing as t

import uvicorn

import coursework.lib.cli as click
from coursework.core import BootConfiguration, di
from coursework.core.config import LoggingSettings, WebSettings

AppSpec = "coursework.web.coursework.main:create_app"


class ServeConfig(t.TypedDict):
    host: str
    port: int


def _serve_config(web_cf: WebSettings) -> ServeConfig:
    cf = web_cf.coursework
    return {"host": str(cf.backend.host), "port": cf.backend.port}


@click.group()
def web(): ...


@web.command(name="serve")
@click.option("-w", "--workers", type=click.IntRange(min=1), default=1)
@di.inject
def serve(
    workers: int,
    boot_cf: BootConfiguration = di.Provide["_boot_config"],
    logging_cf: LoggingSettings = di.Provide["config.logging", di.as_(LoggingSettings)],  # noqa: B008
    web_cf: WebSettings = di.Provide["config.web", di.as_(WebSettings)],  # noqa: B008
):
    """Start the grading API."""
    os.environ["__Coursework_BOOT"] = boot_cf.model_dump_json()
    uvicorn.run(
        AppSpec, factory=True, workers=workers, log_config=logging_cf.model_dump(), **_serve_config(web_cf)
    )


@web.command(name="develop")
@di.inject
def develop(
    boot_cf: BootConfiguration = di.Provide["_boot_config"],
    logging_cf: LoggingSettings = di.Provide["config.logging", di.as_(LoggingSettings)],  # noqa: B008
    web_cf: WebSettings = di.Provide["config.web", di.as_(WebSettings)],  # noqa: B008
):
    """Start the grading API with live-reload."""
    os.environ["__Coursework_BOOT"] = boot_cf.model_dump_json()
    uvicorn.run(AppSpec, factory=True, reload=True, log_config=logging_cf.model_dump(), **_serve_config(web_cf))
