from .app import build_provider, create_app

__all__ = ["build_provider", "create_app"]
