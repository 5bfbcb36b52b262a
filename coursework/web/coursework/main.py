"""Main entry point for the grading API."""

import os
import typing as t
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from coursework.core import BootConfiguration, CourseworkContainer, di
from coursework.core.config import CourseworkWebSettings
from coursework.grading import GradingError
from coursework.lib.json import FastAPIJSONResponse
from coursework.model import DeploymentEnvironment

from .route import router


def handle_grading_error(request: Request, exc: GradingError) -> FastAPIJSONResponse:
    return FastAPIJSONResponse({"detail": exc.message}, status_code=exc.status_code)


@di.inject
def _create_app(
    config: CourseworkWebSettings = di.Provide["config.web.coursework", di.as_(CourseworkWebSettings)],
    env: DeploymentEnvironment = di.Provide["env"],
    root_path: Path = di.Provide["root"],
) -> FastAPI:
    app = FastAPI(
        title="Coursework",
        description="Assessment submission and grading service",
        version="0.1.0",
        default_response_class=FastAPIJSONResponse,
    )

    if env is DeploymentEnvironment.Local and config.frontend is not None:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=[
                f"http://{config.frontend.host}:{config.frontend.port}",
                f"http://localhost:{config.frontend.port}",
            ],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.add_exception_handler(GradingError, handle_grading_error)  # pyright: ignore [reportArgumentType]
    app.include_router(router)
    return app


def create_app() -> FastAPI:
    """Factory function for uvicorn."""
    boot_vars = os.getenv("__Coursework_BOOT")
    if boot_vars:
        boot_cf = BootConfiguration.model_validate_json(boot_vars)
        ct = CourseworkContainer()
        CourseworkContainer.boot(ct, **dict(boot_cf))
        ct.wire(modules=["coursework.web.coursework.main", "coursework.auth.middleware"])
        return _create_app(
            config=CourseworkWebSettings(**ct.config.web.coursework()),
            env=boot_cf.env,
            root_path=t.cast(Path, ct.root()),
        )
    return _create_app()
