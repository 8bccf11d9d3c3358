"""
Logging for the Restaurant Knowledge Scraper

One ``restaurant_kb`` logger feeds a rotating log file and the console.
The manager also formats the run-level messages the orchestrator emits:
run start, crawl progress, per-location outcome and the closing summary.
"""

import json
import logging
import logging.handlers
import re
import sys
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from restaurant_kb.core.config import LoggingConfig


SIZE_UNITS = {'B': 1, 'KB': 1024, 'MB': 1024 ** 2, 'GB': 1024 ** 3}

FILE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(module)s:%(funcName)s:%(lineno)d - %(message)s'
CONSOLE_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'

MAX_LISTED_ERRORS = 10
RULE = "=" * 60

# (heading, [(label, stats key)]) rendered in order
SUMMARY_SECTIONS: List[Tuple[str, List[Tuple[str, str]]]] = [
    ("CRAWLING", [
        ("Total URLs", 'total_urls'),
        ("Successful", 'successful_pages'),
        ("Failed", 'failed_pages'),
    ]),
    ("NORMALIZATION", [
        ("Locations Detected", 'locations'),
        ("Records Emitted", 'records_emitted'),
        ("Knowledge Items", 'knowledge_items'),
        ("Report Errors", 'report_errors'),
        ("Report Assumptions", 'report_assumptions'),
    ]),
]


class LoggingManager:
    """
    Owns the handlers of the ``restaurant_kb`` logger
    """

    LOGGER_NAME = 'restaurant_kb'

    def __init__(self):
        self.logger: Optional[logging.Logger] = None
        self.file_handler: Optional[logging.handlers.RotatingFileHandler] = None
        self.console_handler: Optional[logging.StreamHandler] = None
        self._setup_complete = False

    def setup_logging(self, level: str = "INFO", log_file: str = "./logs/restaurant_kb.log",
                      max_size: str = "100MB", backup_count: int = 5) -> None:
        """
        Attach a rotating file handler and a console handler.

        The file always receives DEBUG records; the console follows ``level``.
        Calling this again replaces the handlers of the previous call.

        Args:
            level: Console level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_file: Path of the log file, parent directories are created
            max_size: Rotation threshold such as "100MB"
            backup_count: Rotated files to keep
        """
        numeric_level = getattr(logging, level.upper())
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)

        logger = logging.getLogger(self.LOGGER_NAME)
        logger.setLevel(logging.DEBUG)
        self.close()
        logger.handlers.clear()

        self.file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=self._parse_size(max_size),
            backupCount=backup_count,
            encoding='utf-8',
        )
        self.file_handler.setLevel(logging.DEBUG)
        self.file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))

        self.console_handler = logging.StreamHandler(sys.stdout)
        self.console_handler.setLevel(numeric_level)
        self.console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt='%H:%M:%S'))

        logger.addHandler(self.file_handler)
        logger.addHandler(self.console_handler)

        self.logger = logger
        self._setup_complete = True
        logger.info(f"Logging to {log_file} at level {level.upper()}")

    def setup_from_config(self, config: Mapping[str, Any]) -> None:
        """Set up logging from the ``logging`` section of a config dict"""
        section = LoggingConfig(**config.get('logging', {}))
        self.setup_logging(section.level, section.file, section.max_size, section.backup_count)

    def _parse_size(self, size_str: str) -> int:
        """Bytes for a size such as '512', '10KB' or '1gb'"""
        match = re.fullmatch(r'\s*(\d+)\s*(B|KB|MB|GB)?\s*', size_str.upper())
        if not match:
            raise ValueError(f"Invalid size: {size_str!r}")
        return int(match.group(1)) * SIZE_UNITS[match.group(2) or 'B']

    def get_logger(self) -> logging.Logger:
        """The configured logger; setup_logging() must have run"""
        if not self._setup_complete or not self.logger:
            raise RuntimeError("Logging not set up. Call setup_logging() first.")
        return self.logger

    def log_run_start(self, base_url: str, url_count: int) -> None:
        if self.logger:
            self.logger.info(f"Pipeline run for {base_url}: {url_count} URLs to crawl")

    def log_progress(self, current: int, total: int, message: str = "") -> None:
        if not self.logger:
            return
        percentage = current / total * 100 if total > 0 else 0
        suffix = f" - {message}" if message else ""
        self.logger.info(f"Progress: {current}/{total} ({percentage:.1f}%){suffix}")

    def log_location_result(self, slug: str, emitted: bool, errors: int, assumptions: int) -> None:
        """One line per normalized location; blocked locations log at WARNING"""
        if not self.logger:
            return
        outcome = "emitted" if emitted else "blocked"
        level = logging.INFO if emitted else logging.WARNING
        self.logger.log(level, f"Location {slug} {outcome} ({errors} errors, {assumptions} assumptions)")

    def log_error(self, error: Exception, context: Optional[Dict[str, Any]] = None) -> None:
        """Log an exception with its traceback and optional JSON context"""
        if not self.logger:
            return
        message = f"Error: {error}"
        if context:
            message += f" | Context: {json.dumps(context, default=str, ensure_ascii=False)}"
        self.logger.error(message, exc_info=True)

    def generate_summary_report(self, stats: Dict[str, Any]) -> str:
        """
        Render the end-of-run summary and log it at INFO.

        Returns:
            The report text, or an empty string when logging is not set up
        """
        if not self.logger:
            return ""

        lines = [
            RULE,
            "PIPELINE RUN SUMMARY",
            RULE,
            f"Base URL: {stats.get('base_url', 'Unknown')}",
            f"Started: {stats.get('start_time', 'Unknown')}",
            f"Finished: {stats.get('end_time', 'Unknown')}",
            f"Duration: {stats.get('duration', 'Unknown')}",
        ]
        for heading, fields in SUMMARY_SECTIONS:
            lines += ["", f"{heading}:"]
            lines += [f"  {label}: {stats.get(key, 0)}" for label, key in fields]
            if heading == "CRAWLING":
                lines.append(f"  Success Rate: {stats.get('success_rate', 0):.1f}%")

        errors = stats.get('errors') or []
        if errors:
            lines += ["", "ERRORS ENCOUNTERED:"]
            lines += [f"  - {error}" for error in errors[:MAX_LISTED_ERRORS]]
            hidden = len(errors) - MAX_LISTED_ERRORS
            if hidden > 0:
                lines.append(f"  ... and {hidden} more errors")
        lines.append(RULE)

        report = "\n".join(lines)
        self.logger.info(f"Run Summary:\n{report}")
        return report

    def close(self) -> None:
        """Close the handlers opened by setup_logging()"""
        for handler in (self.file_handler, self.console_handler):
            if handler:
                handler.close()


logging_manager = LoggingManager()


def get_logger() -> logging.Logger:
    """Logger of the global manager"""
    return logging_manager.get_logger()


def setup_logging(level: str = "INFO", log_file: str = "./logs/restaurant_kb.log",
                  max_size: str = "100MB", backup_count: int = 5) -> None:
    """Set up the global manager"""
    logging_manager.setup_logging(level, log_file, max_size, backup_count)


def setup_logging_from_config(config: Mapping[str, Any]) -> None:
    """Set up the global manager from a config dict"""
    logging_manager.setup_from_config(config)
