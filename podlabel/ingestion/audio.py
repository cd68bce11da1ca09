"""
Audio fetch for podcast episodes.

Downloads the enclosure with browser headers (some hosts redirect through
tracking services that reject bare clients) and streams the body verbatim.
"""

import logging
from typing import Iterator, Optional

import requests

from ..errors import NetworkError


logger = logging.getLogger("podlabel.ingestion")

BROWSER_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36",
    "Accept": "audio/mpeg, audio/*, */*",
    "Accept-Language": "en-US,en;q=0.9",
}

CHUNK_SIZE = 8192


def download_audio(
    url: str,
    timeout: float = 120.0,
    session: Optional[requests.Session] = None,
) -> Iterator[bytes]:
    """
    Stream an audio file.

    The request is issued eagerly so HTTP errors surface before the caller
    starts writing; the returned iterator yields the body in chunks.

    Args:
        url: Enclosure URL
        timeout: Request timeout in seconds
        session: Optional requests session

    Returns:
        Iterator over the response body

    Raises:
        NetworkError: If the request fails or returns an error status
    """
    http = session or requests
    try:
        response = http.get(url, stream=True, headers=BROWSER_HEADERS, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        raise NetworkError(f"Failed to download episode audio from {url}: {e}") from e

    def _chunks() -> Iterator[bytes]:
        try:
            for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                if chunk:
                    yield chunk
        except requests.RequestException as e:
            raise NetworkError(f"Audio download interrupted for {url}: {e}") from e
        finally:
            response.close()

    logger.info(f"Downloading audio from {url}")
    return _chunks()
