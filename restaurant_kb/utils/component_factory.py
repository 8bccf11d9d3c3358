"""
Component Factory

Creates the pipeline components from a configuration dictionary and
registers them with a PipelineOrchestrator.
"""

import logging
from typing import Any, Dict, Optional

from restaurant_kb.core.crawler import Crawler
from restaurant_kb.core.http import AiohttpTransport, HttpTransport
from restaurant_kb.core.orchestrator import PipelineOrchestrator
from restaurant_kb.core.retry import RetryPolicy
from restaurant_kb.core.url_discovery import URLDiscovery
from restaurant_kb.normalization.normalizer import RestaurantNormalizer
from restaurant_kb.processors.classifier import PageClassifier
from restaurant_kb.processors.extractor import ContentExtractor
from restaurant_kb.processors.locations import LocationDetector


def create_classifier_from_config(config: Dict[str, Any]) -> PageClassifier:
    """
    Create a PageClassifier from the optional ``classifier`` section.

    Args:
        config: Configuration dictionary; ``classifier.category_keywords``
            replaces the built-in keyword lists when present

    Raises:
        ValueError: If a keyword list names an unknown page category
    """
    logger = logging.getLogger(__name__)
    classifier_config = config.get('classifier', {})
    classifier = PageClassifier(
        category_keywords=classifier_config.get('category_keywords'),
        min_confidence_threshold=classifier_config.get('min_confidence_threshold', 0.15),
    )
    logger.debug(f"Created PageClassifier with {len(classifier.category_keywords)} categories, "
                 f"threshold: {classifier.min_confidence_threshold}")
    return classifier


def create_pipeline(config: Dict[str, Any], transport: Optional[HttpTransport] = None) -> PipelineOrchestrator:
    """
    Create an orchestrator with every component registered.

    Args:
        config: Configuration dictionary
        transport: HTTP transport; an AiohttpTransport is created when omitted

    Returns:
        PipelineOrchestrator, not yet initialized
    """
    orchestrator = PipelineOrchestrator(config)
    transport = transport or AiohttpTransport(config)
    retry_policy = RetryPolicy.from_config(config)

    orchestrator.register_component("transport", transport)
    orchestrator.register_component("url_discovery", URLDiscovery(config, transport, retry_policy))
    orchestrator.register_component("crawler", Crawler(config, transport, retry_policy))
    orchestrator.register_component("extractor", ContentExtractor(create_classifier_from_config(config)))
    orchestrator.register_component("location_detector", LocationDetector(config.get('cities')))
    orchestrator.register_component("normalizer", RestaurantNormalizer(config))

    return orchestrator
