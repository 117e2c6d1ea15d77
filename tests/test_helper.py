"""Tests for scriptapi.helper.helper: the helper object given to scripts."""

from __future__ import annotations

import datetime

import pytest

from scriptapi import Helper, config
from scriptapi.types import ErrorSeverity
from scriptapi.utils import logger


class Recorder:
    """Collects the arguments of every call."""

    def __init__(self) -> None:
        self.calls: list[tuple[object, ...]] = []

    def __call__(self, *args: object) -> None:
        self.calls.append(args)


@pytest.fixture()
def helper(settings: config.ScriptApiSettings) -> Helper:
    return Helper("de_db", settings)


class TestMessages:
    """Tests for information/warning/error."""

    @pytest.mark.parametrize(
        ("method", "severity"),
        [
            ("information", ErrorSeverity.INFORMATION),
            ("warning", ErrorSeverity.WARNING),
            ("error", ErrorSeverity.FATAL),
        ],
    )
    def test_severity(self, helper: Helper, method: str, severity: ErrorSeverity) -> None:
        received = Recorder()
        helper.message_received.connect(received)
        getattr(helper, method)("Departure table not found", "<html></html>")
        assert received.calls == [("Departure table not found", "<html></html>", severity)]

    def test_repeated_messages_are_counted(self, helper: Helper) -> None:
        received = Recorder()
        helper.message_received.connect(received)

        for _ in range(3):
            helper.warning("Unknown vehicle type")
        helper.information("Using fallback")

        assert received.calls == [
            ("Unknown vehicle type", "", ErrorSeverity.WARNING),
            ("Last error message repeated 2 times", "", ErrorSeverity.INFORMATION),
            ("Using fallback", "", ErrorSeverity.INFORMATION),
        ]

    def test_close_flushes_repetitions(self, helper: Helper) -> None:
        received = Recorder()
        helper.message_received.connect(received)
        helper.error("Broken row")
        helper.error("Broken row")
        helper.close()
        assert received.calls[-1] == ("Last error message repeated 1 times", "", ErrorSeverity.INFORMATION)

    def test_close_without_repetitions(self, helper: Helper) -> None:
        received = Recorder()
        helper.message_received.connect(received)
        helper.error("Broken row")
        helper.close()
        assert len(received.calls) == 1

    def test_provider_log(self, settings: config.ScriptApiSettings, helper: Helper) -> None:
        helper.error("Could not parse time", "<td>25:99</td>")
        helper.error("Could not parse time", "<td>25:99</td>")

        content = (settings.cache_dir / logger.PROVIDER_LOG_NAME).read_text(encoding="utf-8")
        assert content.count('"Could not parse time"') == 1
        assert 'Failed while reading this text: "<td>25:99</td>"' in content
        assert "(de_db)" in content

    def test_long_text_is_shortened_on_console(self, helper: Helper, capsys: pytest.CaptureFixture[str]) -> None:
        helper.warning("Unexpected document", "x" * 400)
        assert "50 more chars" in capsys.readouterr().err


class TestDelegates:
    """The text, time and tag functions are reachable through the helper."""

    def test_text_functions(self, helper: Helper) -> None:
        assert Helper.trim("&nbsp; Hbf ") == "Hbf"
        assert helper.decode_html_entities("K&ouml;ln") == "Köln"
        assert helper.camel_case("HAUPTBAHNHOF") == "Hauptbahnhof"

    def test_decode_html_uses_configured_fallback(self, settings: config.ScriptApiSettings) -> None:
        helper = Helper("de_db", settings.model_copy(update={"fallback_charset": "latin-1"}))
        assert helper.decode_html("Müller".encode("latin-1")) == "Müller"
        assert helper.decode_html("Müller".encode(), "utf-8") == "Müller"

    def test_time_functions(self, helper: Helper) -> None:
        assert helper.match_time("ab 7:05", "h:mm") == {"hour": 7, "minute": 5}
        assert helper.add_mins_to_time("23:55", 10) == "00:05"
        assert helper.add_days_to_date(datetime.date(2011, 2, 28), 1) == datetime.date(2011, 3, 1)
        assert helper.duration("10:00", "10:45") == 45

    def test_tag_functions(self, helper: Helper) -> None:
        document = "<table><tr><th>Time</th><th>Line</th></tr><tr><td>12:05</td><td>S1</td></tr></table>"
        assert helper.find_first_html_tag(document, "td").contents == "12:05"
        assert [m.contents for m in helper.find_html_tags(document, "th")] == ["Time", "Line"]
        assert helper.find_named_html_tags(document, "th").names == ["Time", "Line"]
