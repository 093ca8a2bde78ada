"""wp2d — session client for publishing to a diaspora* pod."""

from wp2d.api import DiasporaPost, PodSessionClient

__version__ = "0.1.0"

__all__ = [
    "DiasporaPost",
    "PodSessionClient",
]
