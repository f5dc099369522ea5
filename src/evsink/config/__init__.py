"""Configuration for evsink."""

from evsink.config.config import SinkConfig

__all__ = ["SinkConfig"]
