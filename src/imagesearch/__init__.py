"""
Image Search Module

Stock-photo lookup for fly patterns (Google Custom Search) and the image
download used by both the selection flow and the image proxy.
"""

from .client import ImageSearchClient, ImageSearchError, fetch_image
from .schemas import ImageResult, FetchedImage

__all__ = [
    "ImageSearchClient",
    "ImageSearchError",
    "fetch_image",
    "ImageResult",
    "FetchedImage",
]
