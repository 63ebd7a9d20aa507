# Bind & workers
bind = "0.0.0.0:8000"
workers = 2  # override with env GUNICORN_WORKERS
# argon2 releases the GIL while hashing
threads = 4
worker_class = "gthread"
timeout = 60
graceful_timeout = 30
keepalive = 5

wsgi_app = "dreamshepherd:create_app()"

# Logs to stdout/stderr (collected by Docker)
accesslog = "-"
errorlog = "-"
loglevel = "info"  # override with env LOG_LEVEL

forwarded_allow_ips = "*"
proxy_protocol = False
