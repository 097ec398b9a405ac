"""Tests for the ReachLogger class."""

from datetime import datetime

import pytest

from warmreach.logger import ReachLogger


class TestReachLogger:
    """Tests for ReachLogger."""

    def test_init(self) -> None:
        """Test logger initialization."""
        logger = ReachLogger()
        assert logger.verbose is False
        assert isinstance(logger.start_time, datetime)

    def test_phase_logs_output(self, capsys: pytest.CaptureFixture[str]) -> None:
        logger = ReachLogger()
        logger.phase("Fetch", "snapshot.json")
        captured = capsys.readouterr()
        assert "[Phase]" in captured.out
        assert "Fetch: snapshot.json" in captured.out
        assert "Fetch" in logger.phase_times

    def test_merged(self, capsys: pytest.CaptureFixture[str]) -> None:
        ReachLogger().merged({"contacts": 12, "companies": 5, "both": 1, "mine": 3, "shared": 1})
        out = capsys.readouterr().out
        assert "[Merged] 12 contacts -> 5 companies" in out
        assert "both=1" in out

    def test_filtered(self, capsys: pytest.CaptureFixture[str]) -> None:
        ReachLogger().filtered(40, 7)
        assert "[Filtered] 40 -> 7 companies" in capsys.readouterr().out

    def test_search_truncates(self, capsys: pytest.CaptureFixture[str]) -> None:
        ReachLogger().search("x" * 80, "explained")
        out = capsys.readouterr().out
        assert "..." in out
        assert "-> explained" in out

    def test_verbose_only_lines(self, capsys: pytest.CaptureFixture[str]) -> None:
        quiet = ReachLogger()
        quiet.fetched("space:S1", 3)
        quiet.keywords(["cto"])
        quiet.skip("invalid", "record")
        assert capsys.readouterr().out == ""

        loud = ReachLogger(verbose=True)
        loud.fetched("space:S1", 3)
        loud.keywords([])
        out = capsys.readouterr().out
        assert "[Fetched] space:S1: 3 records" in out
        assert "(none)" in out

    def test_warning_and_error_go_to_stderr(self, capsys: pytest.CaptureFixture[str]) -> None:
        logger = ReachLogger()
        logger.warning("careful")
        logger.error("broken")
        captured = capsys.readouterr()
        assert "[Warning] careful" in captured.err
        assert "[Error] broken" in captured.err
        assert captured.out == ""

    def test_finish(self, capsys: pytest.CaptureFixture[str]) -> None:
        ReachLogger().finish(12, "out/")
        out = capsys.readouterr().out
        assert "Companies: 12" in out
        assert "Output: out/" in out
