"""
Normalization components for the Restaurant Knowledge Scraper

This package turns raw restaurant data into validated records:
- Field normalization rules
- Priority merging of several sources
- Smart fallbacks for chain locations
- Record validation and the normalization report
"""

from restaurant_kb.normalization.report import NormalizationReport
from restaurant_kb.normalization.merge import merge_with_priority
from restaurant_kb.normalization.info_builder import InfoBuilder
from restaurant_kb.normalization.normalizer import RestaurantNormalizer, NormalizationResult

__all__ = [
    'NormalizationReport',
    'merge_with_priority',
    'InfoBuilder',
    'RestaurantNormalizer',
    'NormalizationResult'
]
