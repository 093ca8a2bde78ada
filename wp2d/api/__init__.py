"""diaspora* pod API — session client and post models."""

from .client import PodSessionClient
from .models import DiasporaPost, normalize_aspect_ids

__all__ = [
    "DiasporaPost",
    "PodSessionClient",
    "normalize_aspect_ids",
]
