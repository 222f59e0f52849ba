#!/usr/bin/env python3
"""
CLI for the Lockbox API server.

Commands:
  serve      Run the API with uvicorn
  init-db    Create database tables and exit
"""

import argparse
import sys

from .config import load_settings
from .database import init_db, make_engine


def cmd_serve(args: argparse.Namespace) -> None:
    import uvicorn

    uvicorn.run(
        "lockbox.main:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        reload=args.reload,
    )


def cmd_init_db(_: argparse.Namespace) -> None:
    settings = load_settings()
    engine = make_engine(settings.database_url)
    init_db(engine)
    print("Tables created in", engine.url.render_as_string(hide_password=True))


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="lockbox", description="Lockbox password-manager backend")
    sub = parser.add_subparsers(dest="command", required=True)

    p_serve = sub.add_parser("serve", help="Run the API server")
    p_serve.add_argument("--host", default="127.0.0.1")
    p_serve.add_argument("--port", type=int, default=8000)
    p_serve.add_argument("--reload", action="store_true", help="Reload on code changes (development)")
    p_serve.set_defaults(func=cmd_serve)

    p_init = sub.add_parser("init-db", help="Create database tables")
    p_init.set_defaults(func=cmd_init_db)

    args = parser.parse_args(argv)
    args.func(args)
    return 0


if __name__ == "__main__":
    sys.exit(main())
