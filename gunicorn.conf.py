# gunicorn.conf.py
import multiprocessing
import os

# Network
bind = os.getenv("GUNICORN_BIND", "0.0.0.0:8000")   # reverse proxy in front
forwarded_allow_ips = os.getenv("FORWARDED_ALLOW_IPS", "127.0.0.1")

# Workers: 2 * CPU cores + 1 unless overridden
workers = int(os.getenv("GUNICORN_WORKERS", multiprocessing.cpu_count() * 2 + 1))
threads = int(os.getenv("GUNICORN_THREADS", "2"))
worker_class = "gthread"
timeout = 60
graceful_timeout = 30
keepalive = 5

# Logging
accesslog = "-"
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()

# App
wsgi_app = "marketplace_project.wsgi:application"
