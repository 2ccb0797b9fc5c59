import multiprocessing
import os

# Gunicorn Production Configuration — `gunicorn -c gunicorn_config.py wsgi:app`
bind = os.environ.get('BIND', '0.0.0.0:8000')

# Workers: (2x CPU Count) + 1 for IO-bound request/response work.
# Each request is one short DB transaction, so sync-style threads suffice.
workers = multiprocessing.cpu_count() * 2 + 1
threads = 2
worker_class = 'gthread'

# Resilience
timeout = 60
max_requests = 1000
max_requests_jitter = 100
keepalive = 5

# Logging
accesslog = '-'       # Stdout
errorlog = '-'        # Stderr
loglevel = 'info'
capture_output = True
