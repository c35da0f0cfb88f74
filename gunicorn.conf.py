"""
Gunicorn configuration for the Telegram sync API.

Run a single worker when SCHEDULER_ENABLED is set: every worker would
otherwise start its own in-process scheduler.
"""
import os

# Server socket
bind = os.getenv("GUNICORN_BIND", "0.0.0.0:8000")
backlog = 512

# Worker processes
workers = int(os.getenv("GUNICORN_WORKERS", 1))
worker_class = "uvicorn.workers.UvicornWorker"

# Worker lifecycle
max_requests = 1000
max_requests_jitter = 100

# Timeouts
# A sync run triggered over HTTP can take close to a minute
timeout = int(os.getenv("GUNICORN_TIMEOUT", 90))
keepalive = 5
graceful_timeout = 60

# Process naming
proc_name = "telegram_sync"

# Server mechanics
daemon = False
pidfile = None

# Logging
accesslog = "-"
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()


def when_ready(server):
    server.log.info("Gunicorn server is ready. Spawning workers")


def worker_int(worker):
    """Called when a worker receives the SIGINT or SIGQUIT signal."""
    worker.log.info("Worker received INT or QUIT signal")
