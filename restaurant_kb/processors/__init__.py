"""
Content processing components for the Restaurant Knowledge Scraper

This package contains components for processing pages including:
- Page classification
- Menu, opening hours and contact extraction
- Location and chain detection
"""

from restaurant_kb.processors.classifier import PageClassifier, ClassificationResult
from restaurant_kb.processors.extractor import ContentExtractor
from restaurant_kb.processors.locations import LocationDetector, is_chain_location

__all__ = [
    'PageClassifier',
    'ClassificationResult',
    'ContentExtractor',
    'LocationDetector',
    'is_chain_location'
]
