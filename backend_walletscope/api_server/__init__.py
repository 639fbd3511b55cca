"""Read-only HTTP API over holdings and activity."""

from backend_walletscope.api_server.server import AddressRegistry, create_app

__all__ = ["AddressRegistry", "create_app"]
