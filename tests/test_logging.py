"""
Tests for LoggingManager
"""

import logging

import pytest

from restaurant_kb.core.logging import LoggingManager, get_logger, logging_manager, setup_logging_from_config


class TestLoggingManager:
    """Test suite for LoggingManager"""

    def test_get_logger_before_setup(self):
        with pytest.raises(RuntimeError):
            LoggingManager().get_logger()

    def test_configured_logger(self):
        logger = get_logger()

        assert logger.name == 'restaurant_kb'
        assert len(logger.handlers) == 2

    @pytest.mark.parametrize("size, expected", [
        ("512", 512),
        ("10KB", 10 * 1024),
        ("100MB", 100 * 1024 * 1024),
        ("1gb", 1024 ** 3),
    ])
    def test_parse_size(self, size, expected):
        assert LoggingManager()._parse_size(size) == expected

    def test_parse_size_rejects_unknown_unit(self):
        with pytest.raises(ValueError):
            LoggingManager()._parse_size("10TB")

    def test_setup_from_config(self, tmp_path):
        manager = LoggingManager()
        log_file = tmp_path / "logs" / "run.log"

        manager.setup_from_config({'logging': {'level': 'warning', 'file': str(log_file), 'max_size': '1KB'}})

        try:
            assert log_file.exists()
            assert manager.file_handler.maxBytes == 1024
            assert manager.console_handler.level == logging.WARNING
        finally:
            manager.close()
            setup_logging_from_config({'logging': {'level': 'DEBUG', 'file': str(tmp_path / "restore.log")}})

    def test_file_receives_debug_at_info_level(self, tmp_path):
        manager = LoggingManager()
        log_file = tmp_path / "run.log"

        manager.setup_logging(level="INFO", log_file=str(log_file))

        try:
            manager.get_logger().debug("Crawl delay 0.5s for torstens.se")
            manager.file_handler.flush()
            assert "Crawl delay 0.5s for torstens.se" in log_file.read_text(encoding='utf-8')
            assert manager.console_handler.level == logging.INFO
        finally:
            manager.close()
            setup_logging_from_config({'logging': {'level': 'DEBUG', 'file': str(tmp_path / "restore.log")}})

    def test_helpers_without_setup_are_silent(self):
        manager = LoggingManager()

        manager.log_run_start('https://torstens.se', 3)
        manager.log_progress(1, 3)
        assert manager.generate_summary_report({'base_url': 'https://torstens.se'}) == ""

    def test_summary_report(self, caplog):
        stats = {
            'base_url': 'https://torstens.se',
            'total_urls': 12,
            'successful_pages': 11,
            'failed_pages': 1,
            'success_rate': 11 / 12 * 100,
            'records_emitted': 1,
            'errors': [f"HTTP 404 for https://torstens.se/{i}" for i in range(12)],
        }

        with caplog.at_level(logging.INFO, logger='restaurant_kb'):
            report = logging_manager.generate_summary_report(stats)

        assert "Success Rate: 91.7%" in report
        assert "Records Emitted: 1" in report
        assert "HTTP 404 for https://torstens.se/9" in report
        assert "HTTP 404 for https://torstens.se/10" not in report
        assert "... and 2 more errors" in report
        assert "PIPELINE RUN SUMMARY" in caplog.text

    def test_log_error_with_context(self, caplog):
        try:
            raise ValueError("broken menu")
        except ValueError as e:
            logging_manager.log_error(e, {'location': 'viken'})

        assert 'Error: broken menu | Context: {"location": "viken"}' in caplog.text

    def test_location_result_levels(self, caplog):
        with caplog.at_level(logging.INFO, logger='restaurant_kb'):
            logging_manager.log_location_result('torstens-viken', True, 0, 2)
            logging_manager.log_location_result('torstens-lund', False, 1, 0)

        levels = {record.getMessage(): record.levelno for record in caplog.records}
        assert levels["Location torstens-viken emitted (0 errors, 2 assumptions)"] == logging.INFO
        assert levels["Location torstens-lund blocked (1 errors, 0 assumptions)"] == logging.WARNING
