#!/usr/bin/env python3
"""Run the LUGGO API server.

Defaults come from ``LUGGO_HOST``, ``LUGGO_PORT`` and ``LUGGO_LOG_LEVEL``;
command-line flags override them.

Usage:
    python run.py [--host HOST] [--port PORT] [--reload] [--workers N]
"""

import argparse

import uvicorn

from luggo.config import get_settings


def main():
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Run the LUGGO API server")
    parser.add_argument("--host", default=settings.host)
    parser.add_argument("--port", type=int, default=settings.port)
    parser.add_argument("--reload", action="store_true", help="Reload on code changes (single worker)")
    parser.add_argument("--workers", type=int, default=1)
    args = parser.parse_args()

    print(f"{settings.project_name} API at http://{args.host}:{args.port}{settings.api_prefix}")

    uvicorn.run(
        "luggo.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        workers=1 if args.reload else args.workers,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
