"""
Crawler

Fetches pages with bounded concurrency, retry with backoff and manual redirect
handling. A fetch never raises: every URL yields a CrawledPage, failed ones
carry an error string and no HTML.
"""

import asyncio
import logging
import time
from datetime import datetime
from typing import Any, Dict, List, Optional

from restaurant_kb.core.base import BaseComponent, CrawledPage, HTTPError, RetryError
from restaurant_kb.core.config import CrawlConfig
from restaurant_kb.core.http import HttpResponse, HttpTransport, fetch_following_redirects
from restaurant_kb.core.logging import logging_manager
from restaurant_kb.core.retry import RetryPolicy
from restaurant_kb.core.worker_pool import WorkerPool


class Crawler(BaseComponent):
    """
    Page fetcher with support for:
    - Sequential crawling with a politeness delay (concurrency 1)
    - Concurrent crawling through a WorkerPool
    - Retry with exponential backoff, including HTTP 429
    - Redirects followed without consuming retry attempts
    """

    def __init__(self, config: Dict[str, Any], transport: HttpTransport,
                 retry_policy: Optional[RetryPolicy] = None,
                 sleep=None):
        super().__init__(config)
        self.logger = logging.getLogger(__name__)
        self.crawl_config = CrawlConfig(**config.get('crawl', {}))
        self.transport = transport
        self.retry_policy = retry_policy or RetryPolicy.from_config(config)
        self._sleep = sleep or asyncio.sleep
        self.cancel_event = asyncio.Event()

        self.stats = {
            'total_crawled': 0,
            'successful_crawls': 0,
            'failed_crawls': 0,
            'total_time': 0.0
        }

    async def initialize(self) -> None:
        """Reset per-run state"""
        self.cancel_event = asyncio.Event()
        self._initialized = True

    async def cleanup(self) -> None:
        """Log final statistics"""
        self.logger.info(f"Crawler stats: {self.stats}")

    def cancel(self) -> None:
        """Stop dispatching new fetches; in-flight fetches still complete"""
        self.cancel_event.set()

    async def fetch_page(self, url: str) -> CrawledPage:
        """
        Fetch one URL. Never raises.

        Args:
            url: Absolute URL

        Returns:
            CrawledPage; on failure ``error`` is set and ``raw_html`` is None
        """
        start_time = time.time()
        fetched_at = datetime.now()
        attempts = 0

        async def operation(attempt: int) -> HttpResponse:
            nonlocal attempts
            attempts = attempt
            return await fetch_following_redirects(
                self.transport,
                url,
                timeout=self.crawl_config.request_timeout,
                max_redirects=self.crawl_config.max_redirects,
            )

        status: Optional[int] = None
        try:
            response = await self.retry_policy.execute(operation, label=f"fetch {url}")
        except RetryError as e:
            error = str(e.last_error)
            status = e.last_error.status if isinstance(e.last_error, HTTPError) else None
            return self._failed_page(url, error, status, fetched_at, start_time, attempts)
        except HTTPError as e:
            return self._failed_page(url, str(e), e.status, fetched_at, start_time, attempts)
        except Exception as e:
            return self._failed_page(url, f"{type(e).__name__}: {e}", None, fetched_at, start_time, attempts)

        duration_ms = (time.time() - start_time) * 1000
        html = response.text or ""
        page = CrawledPage(
            url=url,
            http_status=response.status,
            raw_html=html,
            error=None,
            fetched_at=fetched_at,
            size_bytes=len(html.encode('utf-8')),
            duration_ms=duration_ms,
            attempts=attempts,
            final_url=response.url,
        )

        self.stats['total_crawled'] += 1
        self.stats['successful_crawls'] += 1
        self.stats['total_time'] += duration_ms / 1000
        self.logger.info(f"Fetched {url} ({response.status}, {page.size_bytes} bytes, {duration_ms:.0f}ms)")
        return page

    def _failed_page(self, url: str, error: str, status: Optional[int], fetched_at: datetime,
                     start_time: float, attempts: int) -> CrawledPage:
        duration_ms = (time.time() - start_time) * 1000
        self.stats['total_crawled'] += 1
        self.stats['failed_crawls'] += 1
        self.stats['total_time'] += duration_ms / 1000
        self.logger.warning(f"Failed to fetch {url}: {error}")
        return CrawledPage(
            url=url,
            http_status=status,
            raw_html=None,
            error=error,
            fetched_at=fetched_at,
            duration_ms=duration_ms,
            attempts=max(attempts, 1),
        )

    async def crawl_all(self, urls: List[str], concurrency: Optional[int] = None) -> List[CrawledPage]:
        """
        Crawl every URL.

        Args:
            urls: URLs to fetch
            concurrency: Parallel fetches; defaults to config. 1 means sequential.

        Returns:
            One CrawledPage per input URL, in input order
        """
        concurrency = concurrency or self.crawl_config.max_concurrent_requests
        self.logger.info(f"Crawling {len(urls)} URLs with concurrency {concurrency}")

        if concurrency <= 1:
            pages = []
            for index, url in enumerate(urls):
                if self.cancel_event.is_set():
                    pages.append(self._failed_page(url, "cancelled", None, datetime.now(), time.time(), 0))
                    continue
                if index > 0 and self.crawl_config.crawl_delay > 0:
                    await self._sleep(self.crawl_config.crawl_delay)
                pages.append(await self.fetch_page(url))
            return pages

        def make_task(index: int, url: str):
            async def task() -> CrawledPage:
                # Advisory politeness delay, not a rate guarantee
                if index > 0 and self.crawl_config.crawl_delay > 0:
                    await self._sleep(self.crawl_config.crawl_delay)
                return await self.fetch_page(url)
            return task

        def on_progress(completed: int, total: int, error: Optional[BaseException]) -> None:
            logging_manager.log_progress(completed, total, "pages fetched")

        pool = WorkerPool(concurrency)
        result = await pool.execute_all(
            [make_task(i, url) for i, url in enumerate(urls)],
            on_progress=on_progress,
            cancel_event=self.cancel_event,
        )

        pages = []
        for index, url in enumerate(urls):
            page = result.results_by_index[index]
            if page is None:
                error = result.errors_by_index[index]
                page = self._failed_page(url, str(error) or "unknown error", None, datetime.now(), time.time(), 0)
            pages.append(page)
        return pages

    def get_stats(self) -> Dict[str, Any]:
        """Return crawl statistics"""
        stats = dict(self.stats)
        total = stats['total_crawled']
        stats['success_rate'] = (stats['successful_crawls'] / total * 100) if total else 0.0
        return stats
