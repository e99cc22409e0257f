"""
Record Keeper backend package.

Build a configured FastAPI application with ``records_api.main.create_app``;
ASGI servers load the ready-made one from ``records_api.asgi:app``.
"""
