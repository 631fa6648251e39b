"""
Image Search Client

Client for the Google Custom Search JSON API in image mode, plus a plain
image download helper.

API Documentation: https://developers.google.com/custom-search/v1/reference/rest/v1/cse/list
"""

import logging
from typing import List, Optional

import requests

from src.common.http import create_session
from src.common.settings import Settings, get_settings

from .schemas import DEFAULT_CONTENT_TYPE, FetchedImage, ImageResult, SearchQuery

logger = logging.getLogger(__name__)


class ImageSearchError(Exception):
    """Image search or image download failed."""


def fetch_image(
    url: str,
    session: Optional[requests.Session] = None,
    timeout: int = 30
) -> FetchedImage:
    """
    Download an image.

    Args:
        url: Image URL
        session: Session to use (a plain one is created if omitted)
        timeout: Request timeout in seconds

    Returns:
        FetchedImage with the upstream bytes and content type
        (image/jpeg when upstream sends none)

    Raises:
        ImageSearchError: On any transport failure or HTTP error status
    """
    session = session or requests.Session()
    try:
        response = session.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.exceptions.RequestException as e:
        logger.error(f"Failed to fetch image {url}: {e}")
        raise ImageSearchError(str(e)) from e

    return FetchedImage(
        content=response.content,
        content_type=response.headers.get('Content-Type') or DEFAULT_CONTENT_TYPE,
        source_url=url,
    )


class ImageSearchClient:
    """Client for Custom Search image queries."""

    BASE_URL = "https://www.googleapis.com/customsearch/v1"
    TIMEOUT = 30  # seconds
    QUERY_SUFFIX = "fly fishing fly"

    def __init__(
        self,
        settings: Optional[Settings] = None,
        session: Optional[requests.Session] = None,
        timeout: int = TIMEOUT
    ):
        """
        Initialize image search client.

        Args:
            settings: Service settings holding the API key and engine id
            session: HTTP session (one with retries is created if omitted)
            timeout: Request timeout in seconds
        """
        self.settings = settings or get_settings()
        if not self.settings.google_api_key or not self.settings.google_search_engine_id:
            raise ValueError("GOOGLE_API_KEY and GOOGLE_SEARCH_ENGINE_ID must be configured")

        self.timeout = timeout
        self.session = session or create_session()

    def search(self, text: str, num: int = 5) -> List[ImageResult]:
        """
        Search images for free text.

        Returns:
            Ranked results; empty when the API has no items

        Raises:
            ImageSearchError: On transport failure or API error status
        """
        query = SearchQuery(text=text, num=num)
        params = {
            "key": self.settings.google_api_key,
            "cx": self.settings.google_search_engine_id,
            "q": query.text,
            "searchType": "image",
            "num": query.num,
        }

        try:
            logger.debug(f"Searching images for '{query.text}'")
            response = self.session.get(self.BASE_URL, params=params, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as e:
            logger.error(f"Image search failed: {e}")
            raise ImageSearchError(str(e)) from e
        except ValueError as e:
            raise ImageSearchError(f"Invalid search response: {e}") from e

        results = []
        for item in data.get('items') or []:
            if not item.get('link'):
                continue
            image = item.get('image') or {}
            results.append(ImageResult(
                link=item['link'],
                title=item.get('title', ''),
                thumbnail_link=image.get('thumbnailLink'),
                mime=item.get('mime'),
            ))

        logger.info(f"Image search '{query.text}' returned {len(results)} results")
        return results

    def search_fly(self, fly_name: str, num: int = 5) -> List[ImageResult]:
        """Search stock photos of a fly pattern."""
        return self.search(f"{fly_name} {self.QUERY_SUFFIX}", num=num)

    def fetch(self, url: str) -> FetchedImage:
        """Download a selected result with this client's session."""
        return fetch_image(url, session=self.session, timeout=self.timeout)
