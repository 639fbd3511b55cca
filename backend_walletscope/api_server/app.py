"""
FastAPI/ASGI application entrypoint.

Build the ASGI app from settings in the environment.
Run with: uvicorn backend_walletscope.api_server.app:app --host 0.0.0.0 --port 8000
"""

from backend_walletscope.api_server.server import create_app

app = create_app()

__all__ = ["app"]
