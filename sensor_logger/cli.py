"""CLI entry point: arranca la ingesta MQTT y la API HTTP en un proceso."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Sequence

import uvicorn

from common.config import get_settings

from .bootstrap import build_runtime
from .errors import StartupError
from .main import create_app

logger = logging.getLogger(__name__)


def main(argv: Optional[Sequence[str]] = None) -> int:
    p = argparse.ArgumentParser(description="MQTT sensor logger + query API")
    p.add_argument("--host", default=None, help="override API_HOST")
    p.add_argument("--port", type=int, default=None, help="override API_PORT")
    p.add_argument("--log-level", default=None, help="override LOG_LEVEL")
    args = p.parse_args(argv)

    try:
        settings = get_settings()
    except ValueError as e:
        logging.basicConfig(level=logging.INFO)
        logger.error("Invalid configuration: %s", e)
        return 1

    logging.basicConfig(
        level=(args.log_level or settings.log_level).upper(),
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )

    try:
        runtime = build_runtime(settings)
    except StartupError as e:
        logger.error("Startup failed: %s", e)
        return 1

    if runtime.ingestion is None:
        logger.info("👋🏻 No devices to listen to, I'm leaving...")
        runtime.stop()
        return 0

    # Un fallo de conexión al broker en el lifespan hace que uvicorn salga con error.
    uvicorn.run(
        create_app(runtime),
        host=args.host or settings.api_host,
        port=args.port or settings.api_port,
        log_level=(args.log_level or settings.log_level).lower(),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
