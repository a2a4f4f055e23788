""" WSGI entry point for the CfP API.

    Run behind a reverse proxy with e.g. `gunicorn -c gunicorn.py wsgi:app`.
"""
from werkzeug.middleware.proxy_fix import ProxyFix
from main import create_app

# Trust a single proxy for X-Forwarded-For, -Proto and -Host
app = ProxyFix(create_app(), x_for=1, x_proto=1, x_host=1)
