"""Route modules exposed by the API package."""

from . import assist, health, slack

__all__ = ["assist", "health", "slack"]
