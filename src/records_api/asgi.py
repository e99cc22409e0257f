"""
ASGI entrypoint.

Serve with ``uvicorn records_api.asgi:app``. The app is built from the
environment at import time, so only servers should import this module.
"""

from .main import create_app

app = create_app()
