import os

bind = f"0.0.0.0:{os.getenv('PORT', '3000')}"
wsgi_app = "core.wsgi:application"
workers = int(os.getenv('GUNICORN_WORKERS', 2))
worker_class = "sync"
worker_tmp_dir = "/dev/shm"
max_requests = 1000
max_requests_jitter = 100
timeout = 120
keepalive = 5

# Logging
accesslog = "-"
errorlog = "-"
loglevel = "info"
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'

# Process naming
proc_name = "growthflow-site"

# Server mechanics
daemon = False
umask = 0o007


def _contact_store():
    import django
    from django.apps import apps

    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'core.settings')
    django.setup()
    return apps.get_app_config('contact').store


# Server hooks
def on_starting(server):
    """Create the contacts table once, before any worker starts."""
    server.log.info("Starting Gunicorn server")
    store = _contact_store()
    store.initialize()
    store.close()

def when_ready(server):
    """Called just after the server is started."""
    server.log.info("Gunicorn server is ready. Spawning workers")

def worker_int(worker):
    """Called when a worker receives the SIGINT or SIGQUIT signal."""
    worker.log.info("Worker received SIGINT or SIGQUIT signal")

def worker_exit(server, worker):
    """Close the worker's contact store connection before it exits."""
    _contact_store().close()
    server.log.info("Worker %s closed its contact store", worker.pid)
