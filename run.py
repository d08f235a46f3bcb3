#!/usr/bin/env python3
"""
Local development server for the SoundNest API.

HOST, PORT and RELOAD override the defaults (0.0.0.0, 8000, reload on).
"""

import logging
import os

import uvicorn

from soundnest.config import get_settings


def main():
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    reload = os.getenv("RELOAD", "true").lower() == "true"

    logging.getLogger(__name__).info(f"SoundNest API on http://localhost:{port} (docs at /docs)")
    uvicorn.run(
        "soundnest.api.main:app",
        host=host,
        port=port,
        reload=reload,
        log_level=settings.log_level.lower()
    )


if __name__ == "__main__":
    main()
