"""
HTTP Transport

Thin HTTP-GET collaborator used by URL discovery and the crawler. The session
is opened and closed explicitly around one pipeline run and is handed to the
components that need it.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from urllib.parse import urljoin

import aiohttp

from restaurant_kb.core.base import BaseComponent, HTTPError, NetworkError, ParseError
from restaurant_kb.core.config import CrawlConfig


@dataclass
class HttpResponse:
    """Response of a single GET without redirect handling"""
    url: str
    status: int
    text: str = ""
    headers: Dict[str, str] = field(default_factory=dict)

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup"""
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return None


REDIRECT_STATUSES = frozenset({301, 302, 303, 307, 308})


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Parse a Retry-After header given in seconds; HTTP-date values are ignored"""
    if not value:
        return None
    try:
        return max(0.0, float(value.strip()))
    except ValueError:
        return None


class HttpTransport(BaseComponent):
    """Interface for HTTP GET with a per-request timeout"""

    async def get(self, url: str, timeout: float) -> HttpResponse:
        raise NotImplementedError


class AiohttpTransport(HttpTransport):
    """
    aiohttp-backed transport.

    Redirects are not followed here; the crawler follows ``Location`` itself so
    redirect hops do not consume retry attempts.
    """

    def __init__(self, config: Dict[str, Any]):
        super().__init__(config)
        self.logger = logging.getLogger(__name__)
        self.crawl_config = CrawlConfig(**config.get('crawl', {}))
        self.session: Optional[aiohttp.ClientSession] = None

    async def initialize(self) -> None:
        """Open the client session"""
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(
                headers={
                    'User-Agent': self.crawl_config.user_agent,
                    'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
                    'Accept-Language': 'sv-SE,sv;q=0.9,en;q=0.8',
                },
                timeout=aiohttp.ClientTimeout(total=self.crawl_config.request_timeout),
            )
        self._initialized = True
        self.logger.debug("HTTP session opened")

    async def cleanup(self) -> None:
        """Close the client session"""
        if self.session and not self.session.closed:
            await self.session.close()
        self.session = None
        self._initialized = False
        self.logger.debug("HTTP session closed")

    async def __aenter__(self) -> 'AiohttpTransport':
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.cleanup()

    async def get(self, url: str, timeout: float) -> HttpResponse:
        """
        Issue one GET request.

        Args:
            url: Absolute URL
            timeout: Total timeout in seconds for this request

        Returns:
            HttpResponse with status, headers and decoded body

        Raises:
            NetworkError: On connection failures and timeouts
        """
        if self.session is None:
            raise RuntimeError("Transport not initialized. Call initialize() first.")

        try:
            async with self.session.get(
                url,
                allow_redirects=False,
                timeout=aiohttp.ClientTimeout(total=timeout),
            ) as response:
                text = await response.text(errors='replace')
                return HttpResponse(
                    url=str(response.url),
                    status=response.status,
                    text=text,
                    headers=dict(response.headers),
                )
        except aiohttp.InvalidURL as e:
            raise ParseError(f"Invalid URL {url}: {e}") from e
        except asyncio.TimeoutError as e:
            raise NetworkError(f"Timeout after {timeout}s fetching {url}") from e
        except aiohttp.ClientError as e:
            raise NetworkError(f"Network error fetching {url}: {e}") from e


async def fetch_following_redirects(transport: HttpTransport, url: str, timeout: float,
                                    max_redirects: int = 5) -> HttpResponse:
    """
    GET ``url`` and follow ``Location`` headers within the same attempt.

    Raises:
        HTTPError: For 4xx/5xx responses, too many redirects or a redirect without Location
        NetworkError: Propagated from the transport
    """
    current_url = url
    for _ in range(max_redirects + 1):
        response = await transport.get(current_url, timeout)

        if response.status in REDIRECT_STATUSES:
            location = response.header('Location')
            if not location:
                raise HTTPError(response.status, current_url)
            current_url = urljoin(current_url, location)
            continue

        if response.status == 429:
            raise HTTPError(429, current_url, retry_after=parse_retry_after(response.header('Retry-After')))

        if response.status >= 400:
            raise HTTPError(response.status, current_url)

        response.url = current_url
        return response

    raise NetworkError(f"Too many redirects (>{max_redirects}) fetching {url}")
