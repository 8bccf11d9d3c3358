"""
Storage components for the Restaurant Knowledge Scraper

Writes per-location artifacts and the restaurant index to the file system.
"""

from .artifact_store import ArtifactStore

__all__ = ['ArtifactStore']
