"""
Base Classes and Data Models for the Restaurant Knowledge Scraper

Defines the component base class, the per-page pipeline records passed between
the crawl, extraction and location-detection stages, and the exception hierarchy.
"""

from abc import ABC, abstractmethod
from typing import List, Dict, Any, Optional
from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum


class PageCategory(Enum):
    """Category assigned to an extracted page"""
    MENU = "menu"
    CONTACT = "contact"
    HOURS = "hours"
    ABOUT = "about"
    BOOKING = "booking"
    GENERAL = "general"


@dataclass
class CrawledPage:
    """Final outcome of fetching one URL (after retries)"""
    url: str
    http_status: Optional[int]
    raw_html: Optional[str]
    error: Optional[str]
    fetched_at: datetime
    size_bytes: int = 0
    duration_ms: float = 0.0
    attempts: int = 1
    final_url: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None and self.raw_html is not None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['fetched_at'] = self.fetched_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CrawledPage':
        values = dict(data)
        fetched_at = values.get('fetched_at')
        values['fetched_at'] = datetime.fromisoformat(fetched_at) if fetched_at else datetime.now()
        return cls(**values)


@dataclass
class MenuItemCandidate:
    """Menu item as found on the page, price kept as raw text"""
    title: str
    description: str = ""
    price: Optional[str] = None


@dataclass
class ContactCandidate:
    """Raw contact details found on a page"""
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None

    def is_empty(self) -> bool:
        return not (self.phone or self.email or self.address)


@dataclass
class ExtractedContent:
    """Structured content derived from a single crawled page"""
    url: str
    category: PageCategory
    title: str = ""
    h1: str = ""
    headings: List[str] = field(default_factory=list)
    main_text: str = ""
    menu_item_candidates: List[MenuItemCandidate] = field(default_factory=list)
    hours_candidate: Optional[Dict[str, str]] = None
    contact_candidate: Optional[ContactCandidate] = None
    allergens: List[str] = field(default_factory=list)
    links: List[Dict[str, str]] = field(default_factory=list)
    language: str = "unknown"

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['category'] = self.category.value
        return data


@dataclass
class LocationCandidate:
    """A physical location detected on a site; a site yields one or more"""
    name: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    brand: Optional[str] = None
    source_url: str = ""


class BaseComponent(ABC):
    """Base class for all pipeline components"""

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self._initialized = False

    @abstractmethod
    async def initialize(self) -> None:
        """Initialize the component"""
        pass

    @abstractmethod
    async def cleanup(self) -> None:
        """Clean up resources"""
        pass

    def is_initialized(self) -> bool:
        """Check if component is initialized"""
        return self._initialized


class ScraperError(Exception):
    """Base exception for scraper errors"""
    pass


class ConfigurationError(ScraperError):
    """Configuration-related errors"""
    pass


class NetworkError(ScraperError):
    """Connection failures and timeouts"""
    pass


class HTTPError(ScraperError):
    """Non-success HTTP response"""

    def __init__(self, status: int, url: str = "", retry_after: Optional[float] = None):
        super().__init__(f"HTTP {status} for {url}" if url else f"HTTP {status}")
        self.status = status
        self.url = url
        self.retry_after = retry_after


class ParseError(ScraperError):
    """Malformed HTML or XML input"""
    pass


class ValidationError(ScraperError):
    """Record failed schema validation"""
    pass


class FatalError(ScraperError):
    """Unrecoverable failure that aborts the whole run"""
    pass


class RetryError(ScraperError):
    """Raised when an operation keeps failing after every allowed attempt"""

    def __init__(self, label: str, attempts: int, last_error: BaseException):
        super().__init__(f"{label} failed after {attempts} attempts: {last_error}")
        self.label = label
        self.attempts = attempts
        self.last_error = last_error


class PoolCancelledError(ScraperError):
    """Task skipped because the worker pool was cancelled"""
    pass
