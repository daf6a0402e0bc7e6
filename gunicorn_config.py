# gunicorn -c gunicorn_config.py "app:create_app()"
import os

from config import Config
from models.constants import Visibility

bind = os.getenv("GUNICORN_BIND", "0.0.0.0:8000")
workers = int(os.getenv("GUNICORN_WORKERS", "3"))
# Evidence uploads (video included) can take a while on school networks
timeout = int(os.getenv("GUNICORN_TIMEOUT", "120"))
limit_request_line = 8190

# Each worker opens its own database pool
preload_app = False

accesslog = "-"
errorlog = "-"
loglevel = os.getenv("GUNICORN_LOG_LEVEL", "info")


def on_starting(server):
    """Create the upload tree once, before any worker serves /uploads"""
    for visibility in sorted(Visibility.ALL):
        os.makedirs(os.path.join(Config.UPLOAD_DIR, visibility), exist_ok=True)
    server.log.info(f"Evidence uploads stored under {Config.UPLOAD_DIR}")


def worker_exit(server, worker):
    server.log.info(f"Worker {worker.pid} exiting")
