"""The ``helper`` object handed to provider scripts.

Bundles the stateless text, time and tag functions with the one piece
of per-script state a helper has: the channel scripts use to report
documents they could not parse.
"""

from __future__ import annotations

import datetime
import threading

from scriptapi import config
from scriptapi.helper import tags as tag_matching
from scriptapi.helper import text, timeformat
from scriptapi.types import ErrorSeverity, NamedTagMatches, TagMatch
from scriptapi.utils import logger, signals

log = logger.create_logger("Helper")

# Number of characters of the failing document echoed to the console.
_SHORT_PARSE_TEXT_LENGTH = 350


class Helper:
    """Text parsing helpers for one provider script.

    Signals:
        message_received(message, failed_parse_text, severity): emitted
            for each reported message, once per run of identical
            messages.
    """

    def __init__(self, script_id: str, settings: config.ScriptApiSettings | None = None) -> None:
        self.script_id = script_id
        self._settings = settings or config.get_settings()
        self._lock = threading.Lock()
        self._last_message: str | None = None
        self._repetitions = 0
        self.message_received = signals.Signal("message_received")

    # ── Messages ────────────────────────────────────────────────

    def information(self, message: str, failed_parse_text: str = "") -> None:
        self._report(message, failed_parse_text, ErrorSeverity.INFORMATION)

    def warning(self, message: str, failed_parse_text: str = "") -> None:
        self._report(message, failed_parse_text, ErrorSeverity.WARNING)

    def error(self, message: str, failed_parse_text: str = "") -> None:
        """Report a parse error together with the text that failed to parse."""
        self._report(message, failed_parse_text, ErrorSeverity.FATAL)

    def _report(self, message: str, failed_parse_text: str, severity: ErrorSeverity) -> None:
        with self._lock:
            if message == self._last_message:
                self._repetitions += 1
                return
            self._last_message = message

        self.flush_repeated_messages()
        self.message_received.emit(message, failed_parse_text, severity)

        short_text = failed_parse_text.strip()[:_SHORT_PARSE_TEXT_LENGTH]
        remaining = len(failed_parse_text.strip()) - len(short_text)
        if remaining > 0:
            short_text += f"... <{remaining} more chars>"
        data: dict[str, object] = {"script": self.script_id, "severity": severity.name.lower()}
        if short_text:
            data["text"] = short_text
        if severity is ErrorSeverity.FATAL:
            log.error(message, data)
        elif severity is ErrorSeverity.WARNING:
            log.warn(message, data)
        else:
            log.info(message, data)

        logger.append_provider_log(
            self._settings.cache_dir,
            self.script_id,
            f'\n   "{message}"\n   Failed while reading this text: "{failed_parse_text.strip()}"',
            max_bytes=self._settings.provider_log_max_bytes,
        )

    def flush_repeated_messages(self) -> None:
        """Emit a summary if the last message was repeated."""
        with self._lock:
            repetitions = self._repetitions
            self._repetitions = 0
        if repetitions > 0:
            summary = f"Last error message repeated {repetitions} times"
            log.info(summary, {"script": self.script_id})
            self.message_received.emit(summary, "", ErrorSeverity.INFORMATION)

    def close(self) -> None:
        self.flush_repeated_messages()

    # ── Tag matching ────────────────────────────────────────────

    @staticmethod
    def find_html_tags(document: str, tag_name: str, options: tag_matching.TagOptions = None) -> list[TagMatch]:
        return tag_matching.find_html_tags(document, tag_name, options)

    @staticmethod
    def find_first_html_tag(document: str, tag_name: str, options: tag_matching.TagOptions = None) -> TagMatch:
        return tag_matching.find_first_html_tag(document, tag_name, options)

    @staticmethod
    def find_named_html_tags(document: str, tag_name: str, options: tag_matching.TagOptions = None) -> NamedTagMatches:
        return tag_matching.find_named_html_tags(document, tag_name, options)

    # ── Text ────────────────────────────────────────────────────

    decode_html_entities = staticmethod(text.decode_html_entities)
    encode_html_entities = staticmethod(text.encode_html_entities)
    trim = staticmethod(text.trim)
    simplify = staticmethod(text.simplify)
    strip_tags = staticmethod(text.strip_tags)
    camel_case = staticmethod(text.camel_case)
    split_skip_empty_parts = staticmethod(text.split_skip_empty_parts)
    decode = staticmethod(text.decode)

    def decode_html(self, document: bytes, fallback_charset: str | None = None) -> str:
        """Decode *document*, defaulting to the configured fallback charset."""
        return text.decode_html(document, fallback_charset or self._settings.fallback_charset)

    # ── Dates and times ─────────────────────────────────────────

    match_time = staticmethod(timeformat.match_time)
    match_date = staticmethod(timeformat.match_date)
    format_time = staticmethod(timeformat.format_time)
    format_date = staticmethod(timeformat.format_date)
    format_date_time = staticmethod(timeformat.format_date_time)
    duration = staticmethod(timeformat.duration)
    add_mins_to_time = staticmethod(timeformat.add_mins_to_time)

    @staticmethod
    def add_days_to_date(
        value: str | datetime.date | datetime.datetime,
        days_to_add: int,
        fmt: str = "yyyy-MM-dd",
    ) -> str | datetime.date | datetime.datetime:
        return timeformat.add_days_to_date(value, days_to_add, fmt)
