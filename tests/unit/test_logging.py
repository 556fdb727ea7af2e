"""Tests for loguru sink configuration."""

import pytest
from loguru import logger

from mlm_matrix.utils.logging import setup_logging


@pytest.fixture
def restore_logging():
    yield
    setup_logging(level="DEBUG", log_file="")


class TestSetupLogging:
    """Test setup_logging."""

    def test_file_sink_receives_records(self, tmp_path, restore_logging):
        log_file = tmp_path / "matrix.log"

        setup_logging(level="INFO", log_file=str(log_file))
        logger.info("placement committed")
        logger.debug("not written at INFO")

        content = log_file.read_text(encoding="utf-8")
        assert "placement committed" in content
        assert "not written at INFO" not in content

    def test_empty_path_disables_file_sink(self, tmp_path, restore_logging):
        setup_logging(level="INFO", log_file="")

        assert list(tmp_path.iterdir()) == []
