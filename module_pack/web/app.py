"""FastAPI application factory."""

from __future__ import annotations

from fastapi import FastAPI

from module_pack import __version__
from module_pack.web.api import router


def create_app() -> FastAPI:
    app = FastAPI(title="module-pack", version=__version__)
    app.include_router(router)
    return app
