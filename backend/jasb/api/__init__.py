"""HTTP API for the ledger."""

from jasb.api.server import create_app

__all__ = ["create_app"]
