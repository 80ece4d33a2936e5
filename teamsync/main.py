from __future__ import annotations

import logging

import uvicorn

from .app import app

logger = logging.getLogger("teamsync")


def main() -> None:
    settings = app.state.settings
    logger.info(f"Starting TeamSync worker on {settings.host}:{settings.port}")
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
