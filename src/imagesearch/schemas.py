"""
Image Search Schemas

Pydantic models for Custom Search API responses and downloaded images.
"""

from typing import Optional

from pydantic import BaseModel, Field

DEFAULT_CONTENT_TYPE = "image/jpeg"


class ImageResult(BaseModel):
    """One ranked image hit."""
    link: str
    title: str = ""
    thumbnail_link: Optional[str] = None
    mime: Optional[str] = None


class FetchedImage(BaseModel):
    """Bytes fetched from an image URL."""
    content: bytes
    content_type: str = DEFAULT_CONTENT_TYPE
    source_url: str

    @property
    def extension(self) -> str:
        """File extension taken from the URL path, falling back to jpg."""
        path = self.source_url.split('?')[0].split('#')[0]
        last = path.rsplit('/', 1)[-1]
        if '.' in last:
            ext = last.rsplit('.', 1)[-1].lower()
            if ext.isalnum() and len(ext) <= 5:
                return ext
        return "jpg"


class SearchQuery(BaseModel):
    """Query sent to the image search API."""
    text: str = Field(..., min_length=1)
    num: int = Field(5, ge=1, le=10, description="Custom Search returns at most 10 per page")
