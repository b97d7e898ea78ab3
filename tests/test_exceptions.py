"""异常体系与日志配置测试"""

import os
import sys

import pytest
from loguru import logger

from cogwork.exceptions import (
    CogworkError,
    NoPackageSourceError,
    PackageNotFoundError,
    ProfileNotFoundError,
    ResolutionError,
    SourceFetchError,
    UnsupportedSourceError,
)
from cogwork.logger import setup_logger


class TestExceptions:
    def test_default_codes(self):
        assert CogworkError("x").code == "E000"
        assert NoPackageSourceError("x").code == "E102"
        assert SourceFetchError("x").code == "E201"
        assert PackageNotFoundError("x").code == "E302"
        assert UnsupportedSourceError("x").code == "E304"
        assert ProfileNotFoundError("x").code == "E401"

    def test_hierarchy(self):
        assert issubclass(UnsupportedSourceError, ResolutionError)
        assert issubclass(ResolutionError, CogworkError)

    def test_to_dict(self):
        error = PackageNotFoundError("找不到包", context={"reference": "A-B"})
        assert error.to_dict() == {
            "error": True,
            "code": "E302",
            "message": "找不到包",
            "context": {"reference": "A-B"},
            "type": "PackageNotFoundError",
        }
        assert str(error) == "[E302] 找不到包"

    def test_custom_code(self):
        assert str(CogworkError("x", code="E999")) == "[E999] x"


@pytest.fixture
def restore_logger():
    yield
    logger.remove()
    logger.add(sys.stderr)


class TestSetupLogger:
    def test_console_level(self, restore_logger):
        messages = []
        setup_logger(level="WARNING", sink=messages.append, enqueue=False, colorize=False)
        logger.info("hidden")
        logger.warning("shown")
        assert len(messages) == 1
        assert "WARNING" in messages[0] and "shown" in messages[0]

    def test_debug_from_environment(self, restore_logger, monkeypatch):
        monkeypatch.setenv("COGWORK_DEBUG", "1")
        messages = []
        setup_logger(sink=messages.append, enqueue=False, colorize=False)
        logger.debug("detail")
        assert any("detail" in m for m in messages)

    def test_file_sink_records_debug(self, restore_logger, tmp_path):
        log_dir = tmp_path / "logs"
        setup_logger(
            level="INFO",
            sink=[].append,
            enqueue=False,
            colorize=False,
            log_dir=str(log_dir),
        )
        logger.debug("to file only")
        logger.remove()

        files = os.listdir(log_dir)
        assert len(files) == 1 and files[0].startswith("log-")
        assert "to file only" in (log_dir / files[0]).read_text(encoding="utf-8")
