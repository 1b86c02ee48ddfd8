#!/usr/bin/env python
"""
Storefront Server Entry Point

Usage:
    Development:  python run_server.py --dev
    Production:   python run_server.py
    Gunicorn:     python run_server.py --gunicorn
                  (or: gunicorn storefront.web.main:app -c gunicorn.conf.py)
"""

import argparse
import os
import subprocess

import uvicorn

from storefront.config import get_settings


def run_dev_server(port: int):
    """Run development server with auto-reload."""
    settings = get_settings()
    uvicorn.run(
        "storefront.web.main:app",
        host=settings.api_host,
        port=port,
        reload=True,
        reload_dirs=["storefront"],
        log_level="debug",
        access_log=True,
    )


def run_prod_server(port: int):
    """Run production server with Uvicorn directly."""
    settings = get_settings()
    workers = int(os.getenv("WORKERS", 4))
    if workers > 1 and settings.cache.backend == "memory":
        # Sessions would be invisible across workers
        workers = 1
        print("CACHE_BACKEND=memory: running a single worker; set CACHE_BACKEND=redis to scale out")

    uvicorn.run(
        "storefront.web.main:app",
        host=settings.api_host,
        port=port,
        workers=workers,
        log_level=settings.monitoring.log_level.lower(),
        access_log=True,
        proxy_headers=True,
        forwarded_allow_ips="*",
        server_header=False,
        date_header=True,
    )


def run_gunicorn():
    """Run with Gunicorn (recommended for production)."""
    subprocess.run(["gunicorn", "storefront.web.main:app", "-c", "gunicorn.conf.py"], check=True)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="ShopJoy Storefront Server")
    parser.add_argument("--dev", action="store_true", help="Run in development mode with auto-reload")
    parser.add_argument("--gunicorn", action="store_true", help="Run with Gunicorn (production)")
    parser.add_argument("--port", type=int, default=None, help="Port to run on (default: API_PORT)")

    args = parser.parse_args()
    port = args.port or get_settings().api_port

    if args.dev:
        run_dev_server(port)
    elif args.gunicorn:
        os.environ.setdefault("BIND", f"0.0.0.0:{port}")
        run_gunicorn()
    else:
        run_prod_server(port)
