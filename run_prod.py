#!/usr/bin/env python3
"""
Production runner for the Meetspot API
- Serves the Flask API (meetspot.app) behind an optional reverse proxy
- Loads .env for GOOGLE_MAPS_API_KEY and other settings

Usage:
  python3 run_prod.py

Environment:
  PORT=8000 (default)        # Port to bind
  HOST=0.0.0.0 (default)     # Host interface
  GOOGLE_MAPS_API_KEY=...    # Required for full functionality
  TRUST_PROXY_HEADERS=1      # set to 0 when not behind a proxy
  WSGI_THREADS=8             # waitress worker threads
"""

import os

from werkzeug.middleware.proxy_fix import ProxyFix

from meetspot.app import create_app
from meetspot.config import Settings, configure_logging

FALSE_VALUES = ('0', 'false', 'False', 'no', 'off')


def build_application(settings: Settings = None):
    settings = settings or Settings.from_env()
    application = create_app(settings)

    # Respect reverse proxy headers (X-Forwarded-*) when behind a proxy/HTTPS terminator
    if os.getenv('TRUST_PROXY_HEADERS', '1') not in FALSE_VALUES:
        # Trust a single proxy hop by default; tune via env
        application = ProxyFix(
            application,
            x_for=int(os.getenv('PROXY_FIX_X_FOR', '1')),
            x_proto=int(os.getenv('PROXY_FIX_X_PROTO', '1')),
            x_host=int(os.getenv('PROXY_FIX_X_HOST', '1')),
            x_port=int(os.getenv('PROXY_FIX_X_PORT', '1')),
            x_prefix=int(os.getenv('PROXY_FIX_X_PREFIX', '1')),
        )
    return application


def main():
    settings = Settings.from_env()
    configure_logging(settings)
    application = build_application(settings)

    host = os.getenv('HOST', '0.0.0.0')
    try:
        port = int(os.getenv('PORT', '8000'))
    except ValueError:
        port = 8000

    if not settings.has_api_key:
        print("\n" + "="*60)
        print("Warning: GOOGLE_MAPS_API_KEY is not configured.")
        print("The API will start, but search endpoints will return errors.")
        print("Set it in your environment or .env file.")
        print("="*60 + "\n")

    print(f"\n🚀 Starting Meetspot API (prod) on http://{host}:{port}")

    # Prefer waitress if available; otherwise use Werkzeug's run_simple
    try:
        from waitress import serve
    except ImportError:
        print("[warn] waitress not installed; using Werkzeug's threaded server")
        from werkzeug.serving import run_simple
        run_simple(hostname=host, port=port, application=application, threaded=True)
        return
    print("Using waitress WSGI server")
    serve(application, host=host, port=port, threads=int(os.getenv('WSGI_THREADS', '8')))


if __name__ == '__main__':
    main()
