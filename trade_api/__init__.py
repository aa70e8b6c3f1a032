"""trade_api -- HTTP wire surface over the trade kernel."""

from trade_api.app import create_app

__all__ = ["create_app"]
