from __future__ import annotations

import logging
from typing import List

from sqlalchemy import text
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)


def fetch_device_ids(engine: Engine) -> List[str]:
    """Ids of every known device, used only to build the subscription list."""
    with engine.connect() as conn:
        rows = conn.execute(text("SELECT id FROM devices ORDER BY id")).fetchall()

    device_ids = [str(row[0]) for row in rows]
    logger.info("[DB] Retrieved %d device ids", len(device_ids))
    return device_ids
