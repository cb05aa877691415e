#!/usr/bin/env python
"""
Run the Flock API server.

Usage:
    python run_api.py
    python run_api.py --reload  # Development mode
"""

import argparse

import uvicorn

from shared.config import get_settings


def main():
    parser = argparse.ArgumentParser(description="Run Flock API server")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload")
    parser.add_argument("--host", type=str, help="Host to bind to")
    parser.add_argument("--port", type=int, help="Port to bind to")
    args = parser.parse_args()

    settings = get_settings()

    uvicorn.run(
        "api:app",
        host=args.host or settings.app.host,
        port=args.port or settings.app.port,
        reload=args.reload or settings.app.reload,
        log_level=settings.app.log_level.lower(),
    )


if __name__ == "__main__":
    main()
