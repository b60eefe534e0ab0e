"""Entry point for the Sprite Splitter web service."""

from __future__ import annotations

import logging
import os
import sys


def configure_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(
        level=level,
        format="[%(levelname)s] %(name)s: %(message)s",
    )


def run() -> int:
    """Start the HTTP server."""

    import uvicorn

    configure_logging()
    uvicorn.run(
        "spritesplitter.web.server:app",
        host=os.environ.get("SPLITTER_HOST", "127.0.0.1"),
        port=int(os.environ.get("SPLITTER_PORT", "8000")),
    )
    return 0


if __name__ == "__main__":
    sys.exit(run())
