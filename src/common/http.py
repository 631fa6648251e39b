"""Shared requests session factory for the outbound HTTP clients."""

from typing import Iterable

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry


def create_session(max_retries: int = 3, allowed_methods: Iterable[str] = ("GET",)) -> requests.Session:
    """
    Create requests session with retry logic.

    Only idempotent methods are retried by default; 429 and 5xx responses
    back off exponentially.
    """
    session = requests.Session()

    retry_strategy = Retry(
        total=max_retries,
        backoff_factor=1,
        status_forcelist=[429, 500, 502, 503, 504],
        allowed_methods=list(allowed_methods),
        raise_on_status=False,
    )

    adapter = HTTPAdapter(max_retries=retry_strategy)
    session.mount("https://", adapter)
    session.mount("http://", adapter)

    return session
