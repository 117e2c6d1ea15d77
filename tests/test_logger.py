"""Tests for scriptapi.utils.logger: console, buffer and file output."""

from __future__ import annotations

import pathlib

import pytest

from scriptapi.network import RequestState
from scriptapi.utils import logger

log = logger.create_logger("Test")


class TestLogger:
    """Tests for the Logger output."""

    def test_line_goes_to_stderr(self, capsys: pytest.CaptureFixture[str]) -> None:
        log.warn("Something odd", {"count": 3})
        err = capsys.readouterr().err
        assert "[Test]" in err
        assert "Something odd" in err

    def test_buffer_is_ansi_stripped(self) -> None:
        logger.clear_log_buffer()
        log.info("Request started", {"url": "http://example.com/", "timeoutMs": 500, "ok": True, "stops": [1, 2]})
        (line,) = logger.get_log_buffer()
        assert "\033[" not in line
        assert line.endswith('[Test] Request started url="http://example.com/" timeoutMs=500 ok=True stops=[2 items]')

    def test_buffer_copy(self) -> None:
        logger.clear_log_buffer()
        log.debug("one")
        logger.get_log_buffer().clear()
        assert len(logger.get_log_buffer()) == 1

    def test_long_values_are_shortened(self) -> None:
        logger.clear_log_buffer()
        log.error("Failed", {"text": "x" * 600})
        assert logger.get_log_buffer()[0].endswith('x..."')

    def test_timer(self) -> None:
        logger.clear_log_buffer()
        log.start_timer("download")
        elapsed = log.end_timer("download", "Download done")
        assert elapsed >= 0
        assert "Download done took" in logger.get_log_buffer()[-1]

    def test_timer_not_started(self) -> None:
        assert log.end_timer("never") == 0.0

    def test_buffer_is_bounded(self) -> None:
        logger.clear_log_buffer()
        for i in range(logger.BUFFER_SIZE + 5):
            log.debug(f"line {i}")
        buffered = logger.get_log_buffer()
        assert len(buffered) == logger.BUFFER_SIZE
        assert buffered[0].endswith("line 5")

    def test_bytes_and_enums_are_summarised(self) -> None:
        logger.clear_log_buffer()
        log.info("Body", {"data": b"abc", "state": RequestState.FINISHED})
        assert logger.get_log_buffer()[0].endswith("data=[3 bytes] state=FINISHED")


class TestLogFile:
    """Tests for start_log_file/end_log_file."""

    def test_not_written_by_default(self, tmp_path: pathlib.Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        logger.start_log_file("de_db")
        logger.end_log_file()
        assert not (tmp_path / ".logs").exists()

    def test_enabled_log_file(self, tmp_path: pathlib.Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        logger.start_log_file("de/db", enabled=True)
        log.success("Parsed departures", {"count": 12})
        logger.end_log_file()

        (path,) = (tmp_path / ".logs").iterdir()
        assert path.name.startswith("de_db_")
        content = path.read_text(encoding="utf-8")
        assert "Script Log - de/db" in content
        assert "Parsed departures count=12" in content
        assert "\033[" not in content


class TestProviderLog:
    """Tests for append_provider_log."""

    def test_append(self, tmp_path: pathlib.Path) -> None:
        logger.append_provider_log(tmp_path, "de_db", "first")
        path = logger.append_provider_log(tmp_path, "de_db", "second")
        assert path == tmp_path / logger.PROVIDER_LOG_NAME
        content = path.read_text(encoding="utf-8")
        assert "(de_db): first" in content
        assert "(de_db): second" in content

    def test_oversized_log_is_discarded(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / logger.PROVIDER_LOG_NAME
        path.write_text("old entry\n" * 100, encoding="utf-8")
        logger.append_provider_log(tmp_path, "de_db", "new", max_bytes=100)
        content = path.read_text(encoding="utf-8")
        assert "old entry" not in content
        assert "(de_db): new" in content

    def test_write_failure(self, tmp_path: pathlib.Path) -> None:
        blocked = tmp_path / "cache"
        blocked.write_text("not a directory", encoding="utf-8")
        assert logger.append_provider_log(blocked, "de_db", "text") is None
