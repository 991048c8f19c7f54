"""Unit tests for logging configuration."""

import json
from pathlib import Path

import pytest
from loguru import logger

from incident_api.core.logging import LOG_FILE_NAME, setup_logging


@pytest.fixture(autouse=True)
def _restore_logging():
    yield
    setup_logging("INFO")


class TestLogging:
    """Tests for Loguru sink setup."""

    @pytest.mark.parametrize("level", ["DEBUG", "info", "Warning"])
    def test_accepts_levels_in_any_case(self, level: str) -> None:
        setup_logging(level)

    def test_file_sink_tags_component(self, tmp_path: Path) -> None:
        setup_logging("INFO", log_dir=str(tmp_path / "logs"), component="cli")
        logger.info("written to the file sink")
        logger.complete()

        text = (tmp_path / "logs" / LOG_FILE_NAME).read_text()
        assert "written to the file sink" in text
        assert "| cli |" in text

    def test_json_output_serializes_records(self, capsys: pytest.CaptureFixture[str]) -> None:
        setup_logging("INFO", json_output=True)
        logger.warning("feed slow")
        logger.complete()

        record = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert record["record"]["message"] == "feed slow"
        assert record["record"]["extra"]["component"] == "api"

    def test_bound_component_overrides_default(self, tmp_path: Path) -> None:
        setup_logging("INFO", log_dir=str(tmp_path))
        logger.bind(component="geocode").info("cache hit")
        logger.complete()

        assert "| geocode |" in (tmp_path / LOG_FILE_NAME).read_text()
