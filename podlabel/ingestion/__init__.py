"""
Ingestion package: search provider client and audio fetch.
"""

from .audio import download_audio
from .podcast_index import PodcastIndexClient, build_auth_headers

__all__ = ["PodcastIndexClient", "build_auth_headers", "download_audio"]
