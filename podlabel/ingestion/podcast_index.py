"""
Podcast Index search client.

Every request is authenticated with a time-windowed keyed hash: the SHA-1 hex
digest of api key + api secret + current unix time, sent together with the key
and the time as three headers.

Usage:
    client = PodcastIndexClient(api_key, api_secret)
    episodes = client.search_by_person("luke leaman")
"""

import hashlib
import logging
import time
from typing import Any, Callable, Dict, List, Optional

import requests

from ..errors import NetworkError
from ..logger import log_function


logger = logging.getLogger("podlabel.ingestion")


def build_auth_headers(
    api_key: str, api_secret: str, timestamp: int, user_agent: str = "podlabel/1.0"
) -> Dict[str, str]:
    """
    Build the Podcast Index authentication headers.

    Args:
        api_key: Podcast Index API key
        api_secret: Podcast Index API secret
        timestamp: Unix time in seconds
        user_agent: User-Agent header value

    Returns:
        Header dict with User-Agent, X-Auth-Date, X-Auth-Key and Authorization
    """
    digest = hashlib.sha1(f"{api_key}{api_secret}{timestamp}".encode("utf-8")).hexdigest()
    return {
        "User-Agent": user_agent,
        "X-Auth-Date": str(timestamp),
        "X-Auth-Key": api_key,
        "Authorization": digest,
    }


class PodcastIndexClient:
    """A client for the Podcast Index search API."""

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        base_url: str = "https://api.podcastindex.org/api/1.0",
        user_agent: str = "podlabel/1.0",
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.api_key = api_key
        self.api_secret = api_secret
        self.base_url = base_url.rstrip("/")
        self.user_agent = user_agent
        self.timeout = timeout
        self.session = session or requests.Session()
        self.clock = clock

    @classmethod
    def from_config(cls, config) -> "PodcastIndexClient":
        return cls(
            api_key=config.podcast_index_api_key,
            api_secret=config.podcast_index_api_secret,
            base_url=config.podcast_index_base_url,
            user_agent=config.user_agent,
        )

    @log_function(logger_name="podlabel.ingestion", log_args=False)
    def search_by_person(self, query: str) -> List[Dict[str, Any]]:
        """
        Search episodes featuring a person.

        Args:
            query: Person name

        Returns:
            List of raw episode records (the "items" of the response)

        Raises:
            NetworkError: If the request fails or the response is not JSON
        """
        headers = build_auth_headers(
            self.api_key, self.api_secret, int(self.clock()), self.user_agent
        )
        url = f"{self.base_url}/search/byperson"

        logger.info(f"Searching Podcast Index for person: {query!r}")
        try:
            response = self.session.get(
                url, params={"q": query}, headers=headers, timeout=self.timeout
            )
            response.raise_for_status()
            payload = response.json()
        except requests.JSONDecodeError as e:
            logger.error(f"Podcast Index returned invalid JSON: {e}")
            raise NetworkError(f"Podcast Index returned invalid JSON: {e}") from e
        except requests.RequestException as e:
            logger.error(f"Error fetching podcast data: {e}")
            raise NetworkError(f"Podcast Index search failed: {e}") from e
        except ValueError as e:
            raise NetworkError(f"Podcast Index returned invalid JSON: {e}") from e

        items = payload.get("items") if isinstance(payload, dict) else None
        if not isinstance(items, list):
            logger.warning("Podcast Index response has no 'items' list")
            return []
        logger.info(f"Podcast Index returned {len(items)} episodes")
        return items
