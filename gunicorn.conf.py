"""
Gunicorn Configuration

Uvicorn workers under Gunicorn. Sessions live in the cache backend, so more
than one worker requires CACHE_BACKEND=redis.
"""

import multiprocessing
import os

# Server socket
bind = os.getenv("BIND", "0.0.0.0:8000")
backlog = 2048

# Worker processes
_shared_sessions = os.getenv("CACHE_BACKEND", "memory").lower() == "redis"
workers = int(os.getenv("WORKERS", multiprocessing.cpu_count() * 2 + 1)) if _shared_sessions else 1
worker_class = "uvicorn.workers.UvicornWorker"
worker_connections = 1000
max_requests = 10000
max_requests_jitter = 1000
timeout = 60
keepalive = 5
graceful_timeout = 30

proc_name = "shopjoy-storefront"

# Logging
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()
accesslog = "-"
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'


def when_ready(server):
    """Called when server is ready to receive connections."""
    if not _shared_sessions:
        server.log.warning("CACHE_BACKEND is not redis; running a single worker")
