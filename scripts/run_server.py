"""
Start the APPio service (page generation, backend connection, web preview
and export endpoints) for the `appio` workspace CLI to talk to:

    python scripts/run_server.py --port 8000
    appio --api-url http://127.0.0.1:8000 generate <project-id> "Login page"

Set GEMINI_API_KEY first to get model-generated pages; without it every page
is the deterministic fallback page.
"""

from __future__ import annotations

import argparse
import os
from pathlib import Path

import uvicorn


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the APPio service via uvicorn.")
    parser.add_argument("--host", default=os.environ.get("APPIO_HOST", "127.0.0.1"))
    parser.add_argument("--port", type=int, default=int(os.environ.get("APPIO_PORT", 8000)))
    parser.add_argument(
        "--log-level",
        default=os.environ.get("APPIO_UVICORN_LOG_LEVEL", "info"),
        choices=["critical", "error", "warning", "info", "debug", "trace"],
    )
    parser.add_argument(
        "--reload",
        dest="reload",
        action="store_true",
        help="Enable uvicorn reload for local development.",
    )
    parser.add_argument(
        "--no-reload",
        dest="reload",
        action="store_false",
        help="Disable uvicorn reload (default).",
    )
    parser.set_defaults(reload=False)
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    project_root = Path(__file__).resolve().parents[1]
    os.chdir(project_root)

    uvicorn.run(
        "appio.main:app",
        host=args.host,
        port=args.port,
        log_level=args.log_level,
        reload=args.reload,
    )


if __name__ == "__main__":
    main()
