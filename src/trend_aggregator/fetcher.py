"""HTTP fetch capability shared by every source adapter.

One bounded GET per call, no retries. Sources without a structured API are
read through a text-rendering proxy that returns the page as markdown.
"""

import logging
import re
from typing import Dict, Optional

import httpx

from .config import settings

logger = logging.getLogger(__name__)


class SourceError(Exception):
    """A source adapter could not produce trends."""

    def __init__(self, label: str, cause: str = ""):
        self.label = label
        self.cause = cause
        super().__init__(f"{label} ({cause})" if cause else label)


def build_http_client(timeout: Optional[float] = None) -> httpx.AsyncClient:
    """Create the shared client used by all adapters."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(
            timeout or settings.http_timeout_seconds,
            connect=settings.http_connect_timeout_seconds,
        ),
        headers={"User-Agent": settings.user_agent},
        follow_redirects=True,
    )


def proxy_url(url: str, base: Optional[str] = None) -> str:
    """Route a page through the text-rendering proxy."""
    clean = re.sub(r"^https?://", "", url)
    return f"{base or settings.text_proxy_base}{clean}"


async def fetch_text(
    client: httpx.AsyncClient,
    url: str,
    label: str,
    headers: Optional[Dict[str, str]] = None,
) -> str:
    """
    Fetch a URL and return the body text.

    Raises:
        SourceError: on transport failure, timeout, or a non-2xx status.
    """
    try:
        response = await client.get(url, headers=headers)
    except httpx.TimeoutException as e:
        raise SourceError(label, f"timeout for {url}") from e
    except httpx.HTTPError as e:
        raise SourceError(label, str(e) or e.__class__.__name__) from e

    if not response.is_success:
        logger.debug(f"{label}: HTTP {response.status_code} for {url}")
        raise SourceError(label, f"HTTP {response.status_code} for {url}")

    return response.text
