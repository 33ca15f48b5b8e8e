#!/usr/bin/env python3
"""
authgate -- Account registration, password login and bearer-token access control.

Usage:
  python main.py
  python main.py --host 0.0.0.0 --port 8080
  python main.py --reload

Environment variables (see core/config.py for the full list):
  SECRET_KEY            Required. Token signing secret, at least 32 characters.
  TOKEN_EXPIRE_SECONDS  Token lifetime. Default 3600.
  DATABASE_URL          SQLAlchemy URL of the user store. Default: SQLite file in auth/.
  HOST, PORT            Bind address. Default 127.0.0.1:8080.
"""

import argparse
import sys

import uvicorn

from core.config import ConfigurationError, get_settings


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Run the authgate API server.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--host", default=None, help="Bind address (default: HOST or 127.0.0.1)")
    parser.add_argument("--port", type=int, default=None, help="Bind port (default: PORT or 8080)")
    parser.add_argument("--reload", action="store_true", help="Restart on code changes (development only)")
    args = parser.parse_args(argv)

    # Validate configuration before uvicorn spawns anything, so a missing
    # secret is reported once with a readable message.
    try:
        settings = get_settings()
    except ConfigurationError as e:
        print(f"  [!] Configuration error: {e}", file=sys.stderr)
        return 1

    host = args.host or settings.host
    port = args.port or settings.port
    print(f"  authgate listening on http://{host}:{port}")
    uvicorn.run(
        "api.main:app",
        host=host,
        port=port,
        reload=args.reload,
        log_level=settings.log_level.lower(),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
