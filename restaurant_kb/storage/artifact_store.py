"""
Artifact Store

Writes the per-location artifacts of a pipeline run to the local file system
and keeps the global restaurant index up to date.

Layout::

    <base_path>/
        index.json
        <slug>/info.json
        <slug>/knowledge.jsonl
        <slug>/report.txt
        <slug>/voice-ai.txt
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import aiofiles

from restaurant_kb.core.base import BaseComponent, CrawledPage, FatalError
from restaurant_kb.core.config import OutputConfig
from restaurant_kb.core.logging import get_logger
from restaurant_kb.knowledge.jsonl import dump_jsonl
from restaurant_kb.knowledge.voice_text import render_voice_text
from restaurant_kb.normalization.normalizer import NormalizationResult


INDEX_VERSION = "1.0"
INDEX_FILE = "index.json"


class ArtifactStore(BaseComponent):
    """
    File system writer for normalization results
    """

    def __init__(self, config: Dict[str, Any]):
        super().__init__(config)
        self.logger = get_logger()
        self.output_config = OutputConfig(**config.get('output', {}))
        self.base_path = Path(self.output_config.base_path)

    async def initialize(self) -> None:
        """Create the output directory"""
        self.logger.info(f"Initializing artifact store at {self.base_path}")
        try:
            self.base_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FatalError(f"Cannot create output directory {self.base_path}: {e}")
        self._initialized = True

    async def cleanup(self) -> None:
        """Clean up resources"""
        self.logger.info("Cleaning up artifact store")

    async def _write(self, path: Path, content: str) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(path, 'w', encoding='utf-8') as f:
                await f.write(content)
        except OSError as e:
            raise FatalError(f"Cannot write {path}: {e}")

    async def save_result(self, result: NormalizationResult) -> Dict[str, str]:
        """
        Save the artifacts of one location.

        A result whose record was blocked by validation only gets its report
        written so the operator can see why.

        Args:
            result: Normalization result

        Returns:
            Mapping of artifact name to written path
        """
        location_dir = self.base_path / result.slug
        paths: Dict[str, str] = {}

        report_path = location_dir / "report.txt"
        await self._write(report_path, result.report.render())
        paths['report'] = str(report_path)

        if result.info is None:
            self.logger.warning(f"Only report written for blocked record {result.slug}")
            return paths

        info_path = location_dir / "info.json"
        await self._write(info_path, json.dumps(result.info.to_dict(), indent=2, ensure_ascii=False) + "\n")
        paths['info'] = str(info_path)

        knowledge_path = location_dir / "knowledge.jsonl"
        await self._write(knowledge_path, dump_jsonl(result.knowledge))
        paths['knowledge'] = str(knowledge_path)

        if self.output_config.write_voice_text:
            voice_path = location_dir / "voice-ai.txt"
            await self._write(voice_path, render_voice_text(
                result.knowledge,
                result.info.brand or result.info.name,
                result.info.city,
                result.info.updated_at,
            ))
            paths['voice_text'] = str(voice_path)

        self.logger.info(f"Saved {len(paths)} artifacts for {result.slug} to {location_dir}")
        return paths

    async def save_results(self, results: List[NormalizationResult]) -> Dict[str, Any]:
        """Save every result and update the index; returns the new index"""
        entries = []
        for result in results:
            paths = await self.save_result(result)
            if result.info is not None:
                entries.append(self._index_entry(result, paths))
        return await self.update_index(entries)

    def _index_entry(self, result: NormalizationResult, paths: Dict[str, str]) -> Dict[str, Any]:
        info = result.info
        return {
            'slug': info.slug,
            'name': info.name,
            'brand': info.brand,
            'city': info.city,
            'timezone': info.timezone,
            'updated_at': info.updated_at,
            'paths': paths,
        }

    def load_index(self) -> Dict[str, Any]:
        """Read index.json; a missing or corrupt index starts empty"""
        index_path = self.base_path / INDEX_FILE
        if not index_path.exists():
            return {'restaurants': []}
        try:
            with open(index_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            self.logger.warning(f"Ignoring unreadable index {index_path}: {e}")
            return {'restaurants': []}
        if not isinstance(data, dict) or not isinstance(data.get('restaurants'), list):
            self.logger.warning(f"Ignoring malformed index {index_path}")
            return {'restaurants': []}
        return data

    async def update_index(self, entries: List[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Merge entries into index.json by slug.

        Returns:
            The written index
        """
        by_slug = {entry['slug']: entry for entry in self.load_index()['restaurants'] if 'slug' in entry}
        for entry in entries:
            by_slug[entry['slug']] = entry

        index = {
            'version': INDEX_VERSION,
            'last_updated': datetime.now(timezone.utc).isoformat(timespec='seconds'),
            'total_count': len(by_slug),
            'restaurants': [by_slug[slug] for slug in sorted(by_slug)],
        }
        await self._write(self.base_path / INDEX_FILE, json.dumps(index, indent=2, ensure_ascii=False) + "\n")
        self.logger.info(f"Index updated: {index['total_count']} restaurants")
        return index

    async def save_crawled_pages(self, pages: List[CrawledPage], path: Optional[str] = None) -> str:
        """Cache crawled pages as JSON so a run can be re-normalized offline"""
        cache_path = Path(path) if path else self.base_path / "crawl-cache.json"
        await self._write(cache_path, json.dumps([page.to_dict() for page in pages], ensure_ascii=False))
        self.logger.info(f"Cached {len(pages)} crawled pages to {cache_path}")
        return str(cache_path)

    async def load_crawled_pages(self, path: Optional[str] = None) -> List[CrawledPage]:
        """
        Load a crawl cache.

        Raises:
            FatalError: If the cache cannot be read or parsed
        """
        cache_path = Path(path) if path else self.base_path / "crawl-cache.json"
        try:
            async with aiofiles.open(cache_path, 'r', encoding='utf-8') as f:
                data = json.loads(await f.read())
            return [CrawledPage.from_dict(item) for item in data]
        except (OSError, ValueError, TypeError, KeyError) as e:
            raise FatalError(f"Unreadable crawl cache {cache_path}: {e}")

    def get_storage_stats(self) -> Dict[str, Any]:
        """Count written locations and artifacts"""
        stats = {'base_path': str(self.base_path), 'locations': 0, 'artifacts': 0}
        if not self.base_path.exists():
            return stats
        for location_dir in self.base_path.iterdir():
            if location_dir.is_dir():
                stats['locations'] += 1
                stats['artifacts'] += sum(1 for f in location_dir.iterdir() if f.is_file())
        return stats
