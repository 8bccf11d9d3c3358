"""
Configuration Manager for the Restaurant Knowledge Scraper

Handles YAML/JSON configuration files and environment variable overrides,
parsed into dataclass sections consumed by the pipeline components.
"""

import os
import json
import yaml
from typing import Dict, Any, Optional, List
from dataclasses import dataclass, field, asdict
from pathlib import Path

from restaurant_kb.core.base import ConfigurationError


DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; RestaurantKnowledgeBot/1.0)"


@dataclass
class CrawlConfig:
    """Settings for URL discovery and page fetching"""
    max_concurrent_requests: int = 3
    crawl_delay: float = 0.5
    request_timeout: float = 30.0
    sitemap_timeout: float = 15.0
    max_redirects: int = 5
    max_sitemap_depth: int = 3
    user_agent: str = DEFAULT_USER_AGENT
    sitemap_paths: List[str] = field(default_factory=lambda: ['/sitemap.xml', '/sitemap_index.xml'])
    fallback_paths: List[str] = field(default_factory=lambda: ['', '/meny', '/kontakt', '/om-oss', '/boka-bord'])


@dataclass
class RetryConfig:
    """Exponential backoff settings"""
    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    backoff_factor: float = 2.0
    jitter: bool = True


@dataclass
class NormalizationConfig:
    """Locale defaults used when normalizing restaurant records"""
    timezone: str = "Europe/Stockholm"
    currency: str = "SEK"
    country_code: str = "+46"
    source_priority: List[str] = field(default_factory=lambda: ['official', 'menu', 'social', 'third-party'])
    large_group_threshold: int = 8


@dataclass
class OutputConfig:
    """Artifact output settings"""
    base_path: str = "./restaurants"
    write_voice_text: bool = True


@dataclass
class LoggingConfig:
    """Logging system configuration"""
    level: str = "INFO"
    file: str = "./logs/restaurant_kb.log"
    max_size: str = "100MB"
    backup_count: int = 5


class ConfigManager:
    """
    Centralized configuration manager with support for YAML/JSON files
    and environment variable integration.
    """

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path or "config/config.yaml"
        self._config_data: Dict[str, Any] = {}
        self.crawl_config: Optional[CrawlConfig] = None
        self.retry_config: Optional[RetryConfig] = None
        self.normalization_config: Optional[NormalizationConfig] = None
        self.output_config: Optional[OutputConfig] = None
        self.logging_config: Optional[LoggingConfig] = None

    def load_config(self, config_path: Optional[str] = None) -> Dict[str, Any]:
        """Load configuration from file with environment variable override"""
        if config_path:
            self.config_path = config_path

        config_file = Path(self.config_path)

        if not config_file.exists():
            self._config_data = self._get_default_config()
            self._create_default_config_file()
        else:
            try:
                with open(config_file, 'r', encoding='utf-8') as f:
                    if config_file.suffix.lower() == '.json':
                        self._config_data = json.load(f)
                    else:
                        self._config_data = yaml.safe_load(f) or {}
            except (OSError, ValueError, yaml.YAMLError) as e:
                raise ConfigurationError(f"Failed to load config from {config_file}: {e}")

        self._apply_env_overrides()
        self._parse_config()

        return self._config_data

    def _get_default_config(self) -> Dict[str, Any]:
        """Get default configuration dictionary"""
        return {
            'crawl': asdict(CrawlConfig()),
            'retry': asdict(RetryConfig()),
            'normalization': asdict(NormalizationConfig()),
            'output': asdict(OutputConfig()),
            'logging': asdict(LoggingConfig()),
        }

    def _create_default_config_file(self) -> None:
        """Create default configuration file"""
        config_dir = Path(self.config_path).parent
        config_dir.mkdir(parents=True, exist_ok=True)

        with open(self.config_path, 'w', encoding='utf-8') as f:
            yaml.dump(self._config_data, f, default_flow_style=False, indent=2, allow_unicode=True)

    def _apply_env_overrides(self) -> None:
        """Apply environment variable overrides"""
        self._env_int('SCRAPER_MAX_WORKERS', 'crawl', 'max_concurrent_requests')
        self._env_int('SCRAPER_MAX_RETRIES', 'retry', 'max_retries')

        if os.getenv('SCRAPER_CRAWL_DELAY'):
            try:
                self._config_data.setdefault('crawl', {})['crawl_delay'] = float(os.getenv('SCRAPER_CRAWL_DELAY'))
            except ValueError:
                pass

        if os.getenv('SCRAPER_USER_AGENT'):
            self._config_data.setdefault('crawl', {})['user_agent'] = os.getenv('SCRAPER_USER_AGENT')

        if os.getenv('DEFAULT_TIMEZONE'):
            self._config_data.setdefault('normalization', {})['timezone'] = os.getenv('DEFAULT_TIMEZONE')

        if os.getenv('DEFAULT_CURRENCY'):
            self._config_data.setdefault('normalization', {})['currency'] = os.getenv('DEFAULT_CURRENCY')

        if os.getenv('DEFAULT_COUNTRY_CODE'):
            self._config_data.setdefault('normalization', {})['country_code'] = os.getenv('DEFAULT_COUNTRY_CODE')

        if os.getenv('RESTAURANTS_OUTPUT_DIR'):
            self._config_data.setdefault('output', {})['base_path'] = os.getenv('RESTAURANTS_OUTPUT_DIR')

        if os.getenv('LOG_LEVEL'):
            self._config_data.setdefault('logging', {})['level'] = os.getenv('LOG_LEVEL')

    def _env_int(self, variable: str, section: str, key: str) -> None:
        value = os.getenv(variable)
        if not value:
            return
        try:
            self._config_data.setdefault(section, {})[key] = int(value)
        except ValueError:
            pass

    def _parse_config(self) -> None:
        """Parse configuration into dataclass objects"""
        try:
            self.crawl_config = CrawlConfig(**self._config_data.get('crawl', {}))
            self.retry_config = RetryConfig(**self._config_data.get('retry', {}))
            self.normalization_config = NormalizationConfig(**self._config_data.get('normalization', {}))
            self.output_config = OutputConfig(**self._config_data.get('output', {}))
            self.logging_config = LoggingConfig(**self._config_data.get('logging', {}))
        except TypeError as e:
            raise ConfigurationError(f"Unknown configuration key: {e}")

    def validate_config(self) -> bool:
        """Validate loaded configuration values"""
        if not self.crawl_config:
            raise ConfigurationError("Configuration not loaded")

        if self.crawl_config.max_concurrent_requests < 1:
            raise ConfigurationError(
                f"max_concurrent_requests must be at least 1, got {self.crawl_config.max_concurrent_requests}"
            )

        if self.crawl_config.crawl_delay < 0 or self.crawl_config.request_timeout <= 0:
            raise ConfigurationError("crawl_delay must be >= 0 and request_timeout > 0")

        if self.retry_config.max_retries < 0:
            raise ConfigurationError(f"max_retries must be >= 0, got {self.retry_config.max_retries}")

        if self.retry_config.base_delay < 0 or self.retry_config.max_delay < self.retry_config.base_delay:
            raise ConfigurationError("retry delays must satisfy 0 <= base_delay <= max_delay")

        if not self.normalization_config.country_code.startswith('+'):
            raise ConfigurationError(
                f"country_code must start with '+', got {self.normalization_config.country_code}"
            )

        Path(self.output_config.base_path).mkdir(parents=True, exist_ok=True)

        return True

    def get_config(self) -> Dict[str, Any]:
        """Return the merged configuration dictionary"""
        return self._config_data
