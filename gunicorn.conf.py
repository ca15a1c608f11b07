"""Gunicorn configuration for the backend-resources API.

Run with:
    gunicorn -c gunicorn.conf.py backend_resources.flask_app:app
"""
import multiprocessing
import os

bind = os.environ.get("GUNICORN_BIND", "0.0.0.0:8081")
workers = int(os.environ.get("GUNICORN_WORKERS", multiprocessing.cpu_count() * 2 + 1))
timeout = int(os.environ.get("GUNICORN_TIMEOUT", "30"))

# Log to stdout/stderr for the container runtime
accesslog = "-"
errorlog = "-"
loglevel = os.environ.get("LOG_LEVEL", "info").lower()

# Authorization headers carry bearer tokens; keep them out of access logs
access_log_format = '%(h)s "%(r)s" %(s)s %(b)s %(L)ss'


def post_fork(server, worker):
    """Log which realm each worker serves once settings are importable."""
    worker.log.info(
        "Worker %s serving realm %s",
        worker.pid,
        os.environ.get("KEYCLOAK_REALM", "ITM"),
    )
