"""
Restaurant Knowledge Scraper

Crawls restaurant websites and turns their unstructured HTML into validated
restaurant records and a question/answer knowledge base for a voice assistant.

Features:
- Sitemap discovery with a fallback page list
- Concurrent crawling with retry and exponential backoff
- Heuristic extraction of menus, opening hours and contact details
- Detection of sites that describe several locations (chains)
- Field normalization, priority merging and smart fallbacks
- Deterministic Swedish Q&A generation
- An audit report of every error, fix and assumption
"""

__version__ = "0.1.0"
