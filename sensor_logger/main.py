from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from common.config import get_settings

from . import __version__
from .bootstrap import Runtime, build_runtime
from .endpoints import health_router, sensor_router

logger = logging.getLogger(__name__)


def create_app(runtime: Optional[Runtime] = None, start_background: bool = True) -> FastAPI:
    """Build the HTTP app.

    Without an explicit runtime, it is built from the environment when the
    app starts (``uvicorn sensor_logger.main:app``).
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        rt = runtime if runtime is not None else build_runtime(get_settings())
        app.state.runtime = rt
        if start_background:
            rt.start()
        try:
            yield
        finally:
            if start_background:
                rt.stop()
            app.state.runtime = None

    app = FastAPI(title="Gaia Sensor Logger", version=__version__, lifespan=lifespan)
    app.include_router(health_router)
    app.include_router(sensor_router)
    return app


app = create_app()
