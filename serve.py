#!/usr/bin/env python3
"""
Offer Engine - API Server

Run this script to start the offer comparison API.

Usage:
    python serve.py [--port PORT] [--host HOST] [--reload]

Example:
    python serve.py --port 8080
"""

import argparse

import uvicorn

from offer_engine.config import Settings


def main():
    settings = Settings.from_env()

    parser = argparse.ArgumentParser(
        description="Offer Engine - Offer Comparison API Server"
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        default=settings.port,
        help=f"Port to listen on (default: {settings.port})"
    )
    parser.add_argument(
        "--host", "-H",
        type=str,
        default=settings.host,
        help=f"Host to bind to (default: {settings.host})"
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Restart the server when source files change"
    )

    args = parser.parse_args()

    uvicorn.run(
        "web.app:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_config=None,
    )


if __name__ == "__main__":
    main()
