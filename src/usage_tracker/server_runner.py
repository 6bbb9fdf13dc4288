"""Serve the JSON API under uvicorn."""

from __future__ import annotations

import logging
import threading
import time
import webbrowser
from pathlib import Path
from typing import Optional

import uvicorn

from .config import CollectorSettings
from .paths import get_db_path
from .webapp import create_app

logger = logging.getLogger(__name__)

BROWSER_WAIT_SECONDS = 10.0


def run_dashboard(
    *,
    host: str = "127.0.0.1",
    port: int = 8765,
    db_path: Optional[Path] = None,
    settings: Optional[CollectorSettings] = None,
    start_collector: bool = True,
    open_browser: bool = False,
    log_level: str = "info",
) -> None:
    """Build the app and block serving it until uvicorn exits.

    ``log_config=None`` leaves uvicorn's loggers on the handlers configured
    by the CLI. With ``open_browser`` the status endpoint is opened once the
    server reports it is accepting connections.
    """
    app = create_app(
        db_path=db_path or get_db_path(),
        settings=settings or CollectorSettings(),
        start_collector=start_collector,
    )
    server = uvicorn.Server(
        uvicorn.Config(app, host=host, port=port, log_level=log_level, log_config=None)
    )

    if open_browser:
        url = f"http://{host}:{port}/api/status"
        threading.Thread(target=_open_when_started, args=(server, url), daemon=True).start()

    logger.info("Serving usage API on http://%s:%d", host, port)
    server.run()


def _open_when_started(server: uvicorn.Server, url: str) -> None:
    waited = 0.0
    while not server.started:
        if server.should_exit or waited >= BROWSER_WAIT_SECONDS:
            logger.warning("Server did not start; not opening %s", url)
            return
        time.sleep(0.1)
        waited += 0.1
    try:
        webbrowser.open(url)
    except webbrowser.Error:
        logger.exception("Failed to launch browser for %s", url)
