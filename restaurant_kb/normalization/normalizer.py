"""
Restaurant Normalizer

Turns a raw (possibly multi-source) restaurant record into a validated
RestaurantInfo, its knowledge items and the report of everything that was
repaired or assumed on the way. Every call starts from a fresh report.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from restaurant_kb.core.config import NormalizationConfig
from restaurant_kb.core.models import KnowledgeItem, RestaurantInfo
from restaurant_kb.knowledge.generator import KnowledgeGenerator
from restaurant_kb.normalization.fallback import FieldTracker, enhance_record
from restaurant_kb.normalization.info_builder import InfoBuilder
from restaurant_kb.normalization.merge import merge_with_priority
from restaurant_kb.normalization.report import NormalizationReport
from restaurant_kb.normalization.validation import validate_record
from restaurant_kb.processors.locations import is_chain_location


@dataclass
class NormalizationResult:
    """Output of one normalization pass"""
    slug: str
    info: Optional[RestaurantInfo]
    knowledge: List[KnowledgeItem] = field(default_factory=list)
    report: NormalizationReport = field(default_factory=NormalizationReport)
    is_chain: bool = False
    field_traces: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def emitted(self) -> bool:
        return self.info is not None


class RestaurantNormalizer:
    """
    Normalizes raw restaurant records.

    A raw record is either a flat dict of fields or a dict with a ``sources``
    list of ``{"priority": label, "data": {...}}`` items that are merged by
    priority first. ``text`` holds free page text used by chain detection and
    is not copied to the record.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        config = config or {}
        self.config = NormalizationConfig(**config.get('normalization', {}))
        self.logger = logging.getLogger(__name__)
        self.builder = InfoBuilder(self.config)
        self.generator = KnowledgeGenerator(large_group_threshold=self.config.large_group_threshold)

    def merge_sources(self, raw: Mapping[str, Any]) -> Dict[str, Any]:
        """Flatten a multi-source record; flat records are copied as they are"""
        if 'sources' not in raw:
            return dict(raw)
        merged = merge_with_priority(raw['sources'], self.config.source_priority)
        for key, value in raw.items():
            if key != 'sources':
                merged.setdefault(key, value)
        return merged

    def normalize(self, raw: Mapping[str, Any], slug: Optional[str] = None,
                  location: Optional[str] = None) -> NormalizationResult:
        """
        Normalize one location.

        Args:
            raw: Raw record
            slug: Explicit slug; derived from brand/name and city when omitted
            location: Location label stamped on knowledge items, defaults to the slug

        Returns:
            NormalizationResult; ``info`` is None when validation blocks emission
        """
        report = NormalizationReport()
        tracker = FieldTracker()

        merged = self.merge_sources(raw)
        text = merged.pop('text', '') or ''

        if merged.get('is_chain') is not None:
            is_chain = bool(merged['is_chain'])
        else:
            is_chain = is_chain_location(merged, text)

        enhanced = enhance_record(merged, report, tracker, is_chain, self.config.country_code)
        info = self.builder.build(enhanced, report, tracker, slug)
        outcome = validate_record(info, is_chain, report)

        if not outcome.emit:
            self.logger.warning(f"Record '{info.slug}' not emitted: {'; '.join(outcome.blocking)}")
            return NormalizationResult(
                slug=info.slug,
                info=None,
                report=report,
                is_chain=is_chain,
                field_traces=tracker.to_list(),
            )

        knowledge = self.generator.generate(info, location or info.slug)
        self.logger.info(
            f"Normalized '{info.slug}': {len(knowledge)} knowledge items, "
            f"{len(report.errors)} errors, {len(report.fixes)} fixes, "
            f"{len(report.assumptions)} assumptions"
        )

        return NormalizationResult(
            slug=info.slug,
            info=info,
            knowledge=knowledge,
            report=report,
            is_chain=is_chain,
            field_traces=tracker.to_list(),
        )
