"""
Pipeline Orchestrator

Coordinates one pipeline run: discover URLs, crawl, extract, detect
locations and normalize each location. The run is returned to the caller;
writing artifacts is left to the ArtifactStore.
"""

import time
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from restaurant_kb.core.base import (
    BaseComponent,
    CrawledPage,
    ExtractedContent,
    FatalError,
    LocationCandidate,
    PageCategory,
)
from restaurant_kb.core.logging import get_logger, logging_manager
from restaurant_kb.normalization.normalizer import NormalizationResult
from restaurant_kb.utils.url import get_origin


# Source priority of the data a page contributes, by page category
CATEGORY_PRIORITY = {
    PageCategory.CONTACT: 'official',
    PageCategory.HOURS: 'official',
    PageCategory.BOOKING: 'official',
    PageCategory.ABOUT: 'official',
    PageCategory.MENU: 'menu',
    PageCategory.GENERAL: 'third-party',
}

# Fields that describe one physical location; on multi-location sites they
# come from the location candidate only
LOCATION_FIELDS = ('phone', 'address')


@dataclass
class PipelineRun:
    """State of one pipeline run"""
    base_url: str
    urls: List[str] = field(default_factory=list)
    pages: List[CrawledPage] = field(default_factory=list)
    contents: List[ExtractedContent] = field(default_factory=list)
    locations: List[LocationCandidate] = field(default_factory=list)
    results: List[NormalizationResult] = field(default_factory=list)
    failures: List[Dict[str, str]] = field(default_factory=list)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    @property
    def emitted(self) -> List[NormalizationResult]:
        return [result for result in self.results if result.info is not None]


class PipelineOrchestrator(BaseComponent):
    """
    Runs the crawl -> extract -> normalize pipeline for one site
    """

    COMPONENT_TYPES = ('transport', 'url_discovery', 'crawler', 'extractor',
                       'location_detector', 'normalizer')

    def __init__(self, config: Dict[str, Any]):
        super().__init__(config)
        self.logger = get_logger()
        self.transport = None
        self.url_discovery = None
        self.crawler = None
        self.extractor = None
        self.location_detector = None
        self.normalizer = None

    def register_component(self, component_type: str, component: Any) -> None:
        """Register a component with the orchestrator"""
        if component_type not in self.COMPONENT_TYPES:
            raise ValueError(f"Unknown component type: {component_type}")
        setattr(self, component_type, component)

    def _lifecycle_components(self) -> List[BaseComponent]:
        components = [getattr(self, name) for name in self.COMPONENT_TYPES]
        return [c for c in components if isinstance(c, BaseComponent)]

    async def initialize(self) -> None:
        """Initialize all registered components"""
        self.logger.info("Initializing pipeline orchestrator")
        for name in self.COMPONENT_TYPES:
            if getattr(self, name) is None:
                raise ValueError(f"Component not registered: {name}")

        for component in self._lifecycle_components():
            await component.initialize()

        self._initialized = True
        self.logger.info("Pipeline orchestrator initialized")

    async def cleanup(self) -> None:
        """Clean up all registered components"""
        self.logger.info("Cleaning up pipeline orchestrator")
        for component in reversed(self._lifecycle_components()):
            await component.cleanup()
        self._initialized = False

    async def __aenter__(self) -> 'PipelineOrchestrator':
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.cleanup()

    def cancel(self) -> None:
        """Stop dispatching new page fetches"""
        self.logger.warning("Pipeline run cancelled")
        if self.crawler:
            self.crawler.cancel()

    async def run(self, base_url: str, sitemap_paths: Optional[List[str]] = None,
                  overrides: Optional[Mapping[str, Any]] = None) -> PipelineRun:
        """
        Run the pipeline for one site.

        Args:
            base_url: Site root, e.g. "https://torstens.se"
            sitemap_paths: Sitemap paths to try, defaults to the configured ones
            overrides: Operator-supplied fields applied with official priority

        Returns:
            PipelineRun with one NormalizationResult per location that could
            be normalized

        Raises:
            ConfigurationError: If base_url is invalid
            FatalError: On errors that make the whole run meaningless
        """
        if not self._initialized:
            await self.initialize()

        run = PipelineRun(base_url=base_url, start_time=datetime.now())
        start = time.time()

        run.urls = await self.url_discovery.discover(base_url, sitemap_paths)
        logging_manager.log_run_start(base_url, len(run.urls))

        run.pages = await self.crawler.crawl_all(run.urls)
        for page in run.pages:
            if page.success:
                run.contents.append(self.extractor.extract(page.raw_html, page.final_url or page.url))
            else:
                run.failures.append({'url': page.url, 'error': page.error or 'unknown error'})

        run.locations = self.detect_locations(run.contents)
        multi_location = len(run.locations) > 1
        self.logger.info(f"Detected {len(run.locations)} location(s) on {base_url}")

        for candidate in run.locations:
            label = candidate.name or candidate.city or base_url
            try:
                raw = self.build_raw_record(base_url, run.contents, candidate, multi_location, overrides)
                location = candidate.city.lower() if multi_location and candidate.city else None
                result = self.normalizer.normalize(raw, location=location)
                run.results.append(result)
                logging_manager.log_location_result(
                    result.slug, result.emitted, len(result.report.errors), len(result.report.assumptions)
                )
            except FatalError:
                raise
            except Exception as e:
                logging_manager.log_error(e, {'location': label, 'base_url': base_url})
                run.failures.append({'location': label, 'error': str(e)})

        run.end_time = datetime.now()
        self._log_summary(run, time.time() - start)
        return run

    def detect_locations(self, contents: List[ExtractedContent]) -> List[LocationCandidate]:
        """
        Locations of the whole site.

        The page listing the most locations wins. When every page describes a
        single location, the candidate of the start page is used, since inner
        page titles usually name the page rather than the restaurant.
        """
        if not contents:
            return []

        per_page = [self.location_detector.detect_locations(content) for content in contents]
        best = max(per_page, key=len)
        if len(best) > 1:
            return best

        for content, candidates in zip(contents, per_page):
            if content.url.rstrip('/') == get_origin(content.url):
                return candidates
        for content, candidates in zip(contents, per_page):
            if content.category is PageCategory.GENERAL:
                return candidates
        return per_page[0]

    def build_raw_record(self, base_url: str, contents: List[ExtractedContent],
                         candidate: LocationCandidate, multi_location: bool,
                         overrides: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """
        Raw multi-source record for one location.

        Every page contributes a source whose priority follows the page
        category. The location candidate and operator overrides are applied
        last with official priority.
        """
        sources = []
        for content in contents:
            data: Dict[str, Any] = {}
            if content.hours_candidate:
                data['hours'] = dict(content.hours_candidate)
            if content.menu_item_candidates:
                data['menu'] = [asdict(item) for item in content.menu_item_candidates]
            if content.contact_candidate:
                contact = content.contact_candidate
                data['email'] = contact.email
                if not multi_location:
                    for name in LOCATION_FIELDS:
                        data[name] = getattr(contact, name)
            if data:
                sources.append({'priority': CATEGORY_PRIORITY[content.category], 'data': data})

        location_data = {
            key: value for key, value in asdict(candidate).items()
            if key != 'source_url' and value
        }
        sources.append({'priority': 'official', 'data': location_data})
        if overrides:
            sources.append({'priority': 'official', 'data': dict(overrides)})

        source_urls = [content.url for content in contents]
        if candidate.source_url and candidate.source_url not in source_urls:
            source_urls.insert(0, candidate.source_url)

        if multi_location:
            text = "\n".join(c.main_text for c in contents if c.url == candidate.source_url)
        else:
            text = "\n".join(c.main_text for c in contents)

        return {
            'sources': sources,
            'website': base_url,
            'source_urls': source_urls,
            'text': text,
        }

    def _log_summary(self, run: PipelineRun, duration: float) -> None:
        successful = sum(1 for page in run.pages if page.success)
        total = len(run.pages)
        stats = {
            'base_url': run.base_url,
            'start_time': run.start_time.isoformat() if run.start_time else 'Unknown',
            'end_time': run.end_time.isoformat() if run.end_time else 'Unknown',
            'duration': f"{duration:.2f}s",
            'total_urls': len(run.urls),
            'successful_pages': successful,
            'failed_pages': total - successful,
            'success_rate': (successful / total * 100) if total else 0.0,
            'locations': len(run.locations),
            'records_emitted': len(run.emitted),
            'knowledge_items': sum(len(result.knowledge) for result in run.results),
            'report_errors': sum(len(result.report.errors) for result in run.results),
            'report_assumptions': sum(len(result.report.assumptions) for result in run.results),
            'errors': [failure['error'] for failure in run.failures],
        }
        logging_manager.generate_summary_report(stats)
