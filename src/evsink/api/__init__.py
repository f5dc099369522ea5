"""HTTP API for evsink."""

from evsink.api.server import create_app

__all__ = ["create_app"]
