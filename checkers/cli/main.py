from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

import uvicorn

from ..config import Settings
from ..protocol.console.loop import run_console


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="checkers", description="English draughts rules engine")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", type=str, default=None, help="Bind address (default: CHECKERS_HOST)")
    serve.add_argument("--port", type=int, default=None, help="Bind port (default: CHECKERS_PORT)")

    play = sub.add_parser("play", help="Play through the line-oriented console protocol")
    play.add_argument("--load", type=str, default=None, help="Resume from a saved game file")

    args = parser.parse_args(argv)
    settings = Settings.from_env()
    logging.basicConfig(level=settings.log_level, stream=sys.stderr)

    if args.command == "serve":
        uvicorn.run(
            "checkers.protocol.http.app:create_app",
            factory=True,
            host=args.host or settings.host,
            port=args.port or settings.port,
        )
        return 0
    return run_console(settings, load_path=args.load)


if __name__ == "__main__":
    sys.exit(main())
