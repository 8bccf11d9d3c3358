"""
Core components for the Restaurant Knowledge Scraper

This package contains the core components including:
- Base classes, data models and exceptions
- Configuration management
- Logging system
- Retry policy and worker pool
- URL discovery, HTTP transport and crawler
- Pipeline orchestrator
"""

from restaurant_kb.core.base import (
    PageCategory,
    CrawledPage,
    MenuItemCandidate,
    ContactCandidate,
    ExtractedContent,
    LocationCandidate,
    BaseComponent,
    ScraperError,
    ConfigurationError,
    NetworkError,
    HTTPError,
    ParseError,
    ValidationError,
    FatalError,
    RetryError,
    PoolCancelledError
)

from restaurant_kb.core.config import (
    ConfigManager,
    CrawlConfig,
    RetryConfig,
    NormalizationConfig,
    OutputConfig,
    LoggingConfig
)

from restaurant_kb.core.logging import (
    LoggingManager,
    get_logger,
    setup_logging,
    setup_logging_from_config
)

from restaurant_kb.core.retry import RetryPolicy
from restaurant_kb.core.worker_pool import WorkerPool, PoolResult
from restaurant_kb.core.http import HttpResponse, HttpTransport, AiohttpTransport
from restaurant_kb.core.url_discovery import URLDiscovery
from restaurant_kb.core.crawler import Crawler
from restaurant_kb.core.orchestrator import PipelineOrchestrator, PipelineRun

__all__ = [
    # Base classes
    'PageCategory',
    'CrawledPage',
    'MenuItemCandidate',
    'ContactCandidate',
    'ExtractedContent',
    'LocationCandidate',
    'BaseComponent',
    'ScraperError',
    'ConfigurationError',
    'NetworkError',
    'HTTPError',
    'ParseError',
    'ValidationError',
    'FatalError',
    'RetryError',
    'PoolCancelledError',

    # Configuration
    'ConfigManager',
    'CrawlConfig',
    'RetryConfig',
    'NormalizationConfig',
    'OutputConfig',
    'LoggingConfig',

    # Logging
    'LoggingManager',
    'get_logger',
    'setup_logging',
    'setup_logging_from_config',

    # Fetching
    'RetryPolicy',
    'WorkerPool',
    'PoolResult',
    'HttpResponse',
    'HttpTransport',
    'AiohttpTransport',
    'URLDiscovery',
    'Crawler',

    # Orchestrator
    'PipelineOrchestrator',
    'PipelineRun'
]
