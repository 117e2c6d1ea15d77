"""Text helpers for cleaning up scraped HTML fragments.

All functions are pure and safe to call from concurrently running
scripts.
"""

from __future__ import annotations

import codecs
import re

from scriptapi.utils import logger

log = logger.create_logger("Helper-Text")

# An attribute with or without a value; quoted values may contain ">".
ATTRIBUTE_PATTERN = r"""\w+(?:\s*=\s*(?:"[^"]*"|'[^']*'|[^"'>\s]+))?"""

_TAG_RE = re.compile(rf"</?\w+(?:\s+{ATTRIBUTE_PATTERN})*(?:\s*/)?>")
_CHAR_CODE_RE = re.compile(r"&#(\d+);")
_HEX_CHAR_CODE_RE = re.compile(r"&#[xX]([0-9a-fA-F]+);")
_EDGE_NBSP_RE = re.compile(r"^(?:&nbsp;)+|(?:&nbsp;)+$", re.IGNORECASE)
_NBSP_RE = re.compile(r"(?:&nbsp;)+", re.IGNORECASE)
_WORD_START_RE = re.compile(r"(^|\W)(\w)")
_META_CHARSET_RE = re.compile(rb"""<meta[^>]+charset\s*=\s*["']?\s*([\w.:-]+)""", re.IGNORECASE)

_NAMED_ENTITIES = {
    "&nbsp;": " ",
    "&amp;": "&",
    "&lt;": "<",
    "&gt;": ">",
    "&quot;": '"',
    "&szlig;": "ß",
    "&auml;": "ä",
    "&Auml;": "Ä",
    "&ouml;": "ö",
    "&Ouml;": "Ö",
    "&uuml;": "ü",
    "&Uuml;": "Ü",
}
_NAMED_ENTITY_RE = re.compile("|".join(re.escape(name) for name in _NAMED_ENTITIES))

_ENCODE_MAP = {char: entity for entity, char in _NAMED_ENTITIES.items() if entity != "&quot;"}


def _chr_or_keep(match: re.Match[str], base: int) -> str:
    try:
        return chr(int(match.group(1), base))
    except (ValueError, OverflowError):
        return match.group(0)


def decode_html_entities(html: str) -> str:
    """Replace numeric character references and common named entities.

    ``&nbsp;`` becomes a plain space.
    """
    if not html:
        return html
    text = _CHAR_CODE_RE.sub(lambda m: _chr_or_keep(m, 10), html)
    text = _HEX_CHAR_CODE_RE.sub(lambda m: _chr_or_keep(m, 16), text)
    return _NAMED_ENTITY_RE.sub(lambda m: _NAMED_ENTITIES[m.group(0)], text)


def encode_html_entities(text: str) -> str:
    """Inverse of :func:`decode_html_entities` for the named entities."""
    if not text:
        return text
    return "".join(_ENCODE_MAP.get(char, char) for char in text)


def trim(text: str) -> str:
    """Strip whitespace and leading/trailing ``&nbsp;`` entities."""
    return _EDGE_NBSP_RE.sub("", text.strip()).strip()


def simplify(text: str) -> str:
    """Drop ``&nbsp;`` entities and collapse runs of whitespace."""
    return " ".join(_NBSP_RE.sub("", text).split())


def strip_tags(text: str) -> str:
    """Remove all HTML tags, leaving their text contents."""
    return _TAG_RE.sub("", text)


def camel_case(text: str) -> str:
    """Lower-case *text*, then upper-case the first letter of every word."""
    return _WORD_START_RE.sub(lambda m: m.group(1) + m.group(2).upper(), text.lower())


def split_skip_empty_parts(text: str, separator: str) -> list[str]:
    """Split *text* at *separator*, dropping empty parts."""
    return [part for part in text.split(separator) if part]


# ── Document decoding ───────────────────────────────────────────


def _codec_name(charset: str | bytes | None) -> str | None:
    """Return a normalised codec name, or ``None`` if Python has no such codec."""
    if not charset:
        return None
    name = charset.decode("ascii", errors="ignore") if isinstance(charset, bytes) else charset
    try:
        return codecs.lookup(name.strip()).name
    except LookupError:
        return None


def detect_charset(document: bytes) -> str | None:
    """Find the charset a document declares via BOM or ``<meta>`` tag."""
    if document.startswith(codecs.BOM_UTF8):
        return "utf-8-sig"
    if document.startswith((codecs.BOM_UTF16_LE, codecs.BOM_UTF16_BE)):
        return "utf-16"
    match = _META_CHARSET_RE.search(document[:4096])
    return _codec_name(match.group(1)) if match else None


def decode(document: bytes, charset: str | bytes | None = None) -> str:
    """Decode *document* with *charset*, falling back to UTF-8."""
    name = _codec_name(charset)
    if charset and name is None:
        log.debug("Unknown charset, using utf-8", {"charset": str(charset)})
    return document.decode(name or "utf-8", errors="replace")


def decode_html(document: bytes, fallback_charset: str | bytes | None = None) -> str:
    """Decode an HTML document using the charset it declares.

    Documents that declare nothing are decoded with
    *fallback_charset*, or UTF-8 when that is missing or unknown.
    """
    declared = detect_charset(document)
    if declared:
        return document.decode(declared, errors="replace")
    return decode(document, fallback_charset)
