"""
URL Discovery

Finds the pages to crawl for a restaurant site from its sitemap(s). Sitemap
indexes are followed recursively; only same-origin URLs are kept. When no
sitemap yields anything, a fixed list of typical restaurant paths is used.
"""

import logging
import xml.etree.ElementTree as ET
from typing import Any, Dict, List, Optional, Set, Tuple

from restaurant_kb.core.base import BaseComponent, ConfigurationError, ParseError
from restaurant_kb.core.config import CrawlConfig
from restaurant_kb.core.http import HttpTransport, fetch_following_redirects
from restaurant_kb.core.retry import RetryPolicy
from restaurant_kb.utils.url import is_valid_url, join_url, normalize_url, same_origin


def _local_name(tag: str) -> str:
    """Strip an XML namespace: '{ns}loc' -> 'loc'"""
    return tag.rsplit('}', 1)[-1] if isinstance(tag, str) else ''


def parse_sitemap(xml_text: str) -> Tuple[str, List[str]]:
    """
    Parse a sitemap document.

    Returns:
        ('index', child sitemap URLs) or ('urlset', page URLs)

    Raises:
        ParseError: If the document is not well-formed sitemap XML
    """
    try:
        root = ET.fromstring(xml_text.strip())
    except ET.ParseError as e:
        raise ParseError(f"Malformed sitemap XML: {e}") from e

    root_name = _local_name(root.tag)
    if root_name == 'sitemapindex':
        kind, entry_name = 'index', 'sitemap'
    elif root_name == 'urlset':
        kind, entry_name = 'urlset', 'url'
    else:
        raise ParseError(f"Unexpected sitemap root element <{root_name}>")

    locations = []
    for entry in root:
        if _local_name(entry.tag) != entry_name:
            continue
        for child in entry:
            if _local_name(child.tag) == 'loc' and child.text and child.text.strip():
                locations.append(child.text.strip())
    return kind, locations


class URLDiscovery(BaseComponent):
    """Sitemap-driven URL discovery with a guaranteed fallback list"""

    def __init__(self, config: Dict[str, Any], transport: HttpTransport,
                 retry_policy: Optional[RetryPolicy] = None):
        super().__init__(config)
        self.logger = logging.getLogger(__name__)
        self.crawl_config = CrawlConfig(**config.get('crawl', {}))
        self.transport = transport
        self.retry_policy = retry_policy or RetryPolicy.from_config(config)

    async def initialize(self) -> None:
        self._initialized = True

    async def cleanup(self) -> None:
        pass

    async def discover(self, base_url: str, sitemap_paths: Optional[List[str]] = None) -> List[str]:
        """
        Discover crawlable URLs for a site.

        Args:
            base_url: Site root, e.g. https://restaurang.se
            sitemap_paths: Sitemap paths relative to the root; defaults to config

        Returns:
            Non-empty, de-duplicated list of same-origin URLs

        Raises:
            ConfigurationError: If base_url is not a valid http(s) URL
        """
        if not is_valid_url(base_url):
            raise ConfigurationError(f"Invalid base URL: {base_url!r}")

        paths = sitemap_paths if sitemap_paths is not None else self.crawl_config.sitemap_paths
        visited: Set[str] = set()
        found: List[str] = []
        seen: Set[str] = set()

        for path in paths:
            sitemap_url = join_url(base_url, path)
            for url in await self._collect(sitemap_url, base_url, visited, depth=0):
                if url not in seen:
                    seen.add(url)
                    found.append(url)

        if found:
            self.logger.info(f"Discovered {len(found)} URLs from sitemaps of {base_url}")
            return found

        fallback = self.get_fallback_urls(base_url)
        self.logger.info(f"No sitemap URLs for {base_url}, using {len(fallback)} fallback URLs")
        return fallback

    def get_fallback_urls(self, base_url: str) -> List[str]:
        """Typical restaurant pages: home, menu, contact, about, booking"""
        urls = []
        for path in self.crawl_config.fallback_paths:
            url = join_url(base_url, path)
            if url not in urls:
                urls.append(url)
        return urls

    async def _collect(self, sitemap_url: str, base_url: str, visited: Set[str], depth: int) -> List[str]:
        if sitemap_url in visited:
            return []
        visited.add(sitemap_url)

        if depth > self.crawl_config.max_sitemap_depth:
            self.logger.warning(f"Sitemap nesting too deep, skipping {sitemap_url}")
            return []

        try:
            xml_text = await self._fetch_sitemap(sitemap_url)
            kind, locations = parse_sitemap(xml_text)
        except ParseError as e:
            self.logger.warning(f"Skipping sitemap {sitemap_url}: {e}")
            return []
        except Exception as e:
            self.logger.info(f"Sitemap not available at {sitemap_url}: {e}")
            return []

        if kind == 'index':
            self.logger.debug(f"Sitemap index {sitemap_url} lists {len(locations)} sitemaps")
            urls = []
            for child_url in locations:
                if same_origin(child_url, base_url):
                    urls.extend(await self._collect(normalize_url(child_url), base_url, visited, depth + 1))
            return urls

        urls = [normalize_url(loc) for loc in locations if same_origin(loc, base_url)]
        skipped = len(locations) - len(urls)
        if skipped:
            self.logger.debug(f"Dropped {skipped} off-origin URLs from {sitemap_url}")
        return urls

    async def _fetch_sitemap(self, sitemap_url: str) -> str:
        async def operation(attempt: int) -> str:
            response = await fetch_following_redirects(
                self.transport,
                sitemap_url,
                timeout=self.crawl_config.sitemap_timeout,
                max_redirects=self.crawl_config.max_redirects,
            )
            return response.text

        return await self.retry_policy.execute(operation, label=f"sitemap {sitemap_url}")
