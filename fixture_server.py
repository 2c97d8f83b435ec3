"""Static fixture site for smoke runs of the screen-reader agent."""
from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path
from typing import Optional

import uvicorn
from starlette.applications import Starlette
from starlette.responses import FileResponse
from starlette.routing import Mount, Route
from starlette.staticfiles import StaticFiles

SITE_DIR = Path(__file__).resolve().parent / "test_site"
DEFAULT_PORT = 3456

logger = logging.getLogger("fixture_server")


def create_app(site_dir: Optional[Path] = None) -> Starlette:
    """Serve ``index.html`` at ``/``, ``secret-info.html`` at ``/secret-info``, the rest as static files."""
    root = site_dir or SITE_DIR

    async def home(request):
        return FileResponse(root / "index.html")

    async def secret_info(request):
        return FileResponse(root / "secret-info.html")

    routes = [
        Route("/", endpoint=home, methods=["GET"]),
        Route("/secret-info", endpoint=secret_info, methods=["GET"]),
        Mount("/", app=StaticFiles(directory=str(root)), name="static"),
    ]
    return Starlette(routes=routes)


def main() -> None:
    parser = argparse.ArgumentParser(description="Serve the accessibility fixture site")
    parser.add_argument("--host", default="127.0.0.1", help="Interface to bind (default: 127.0.0.1)")
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.getenv("PORT", DEFAULT_PORT)),
        help=f"Port to listen on (default: $PORT or {DEFAULT_PORT})",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")
    logger.info("Test server running at http://%s:%s", args.host, args.port)
    uvicorn.run(create_app(), host=args.host, port=args.port, log_level="info")


if __name__ == "__main__":
    main()
