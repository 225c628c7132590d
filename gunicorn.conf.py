"""Gunicorn configuration for the zeus admin API.

Run with:
    gunicorn -c gunicorn.conf.py zeus.flask_app:app

Bind address and worker count come from GUNICORN_BIND / GUNICORN_WORKERS.
Secrets are read by zeus.config.settings from /run/secrets in each worker.
"""
import os

bind = os.environ.get("GUNICORN_BIND", "0.0.0.0:8000")
workers = int(os.environ.get("GUNICORN_WORKERS", "2"))
# The in-memory store lives in the worker process; threads share it, processes do not
threads = int(os.environ.get("GUNICORN_THREADS", "4"))
accesslog = "-"
loglevel = os.environ.get("LOG_LEVEL", "info").lower()


def post_fork(server, worker):
    """Called just after a worker has been forked."""
    demo_mode = os.environ.get("DEMO_MODE", "false").lower() == "true"
    if demo_mode and workers > 1:
        worker.log.warning("DEMO_MODE=true with %d workers: each worker seeds its own in-memory store", workers)

    if not os.environ.get("USER_SERVICE_URL"):
        worker.log.info("USER_SERVICE_URL not set; worker %s uses the in-memory store", worker.pid)

    from pathlib import Path
    secrets_dir = Path("/run/secrets")
    if secrets_dir.exists() and secrets_dir.is_dir():
        secret_files = list(secrets_dir.glob("*"))
        if secret_files:
            worker.log.info(f"Found {len(secret_files)} secrets in /run/secrets")
