"""HTML tag matching without building a DOM.

Provider documents are frequently malformed: unescaped ``>`` inside
attribute values, unclosed void elements, mixed quoting.  Instead of
parsing the whole document, the matcher scans for opening tags of one
name, reads their attributes with a regex that understands quoting,
and resolves the matching closing tag by counting nested tags of the
same name.

Only top-level matches are reported.  To descend into a match, run the
matcher again on its ``contents``.
"""

from __future__ import annotations

import re
from collections.abc import Mapping

import pydantic

from scriptapi.helper import text
from scriptapi.types import tags
from scriptapi.utils import errors, logger

log = logger.create_logger("Helper-Tags")

_ATTRIBUTE_RE = re.compile(r"""(\w+)(?:\s*=\s*(?:"([^"]*)"|'([^']*)'|([^"'>\s]+)))?""")

TagOptions = tags.TagSearchOptions | Mapping[str, object] | None


class _PatternError(Exception):
    """A tag name or option pattern is not a valid regular expression."""


# ── Option handling ─────────────────────────────────────────────


def _coerce_options(options: TagOptions) -> tags.TagSearchOptions | None:
    if options is None:
        return tags.TagSearchOptions()
    if isinstance(options, tags.TagSearchOptions):
        return options
    try:
        return tags.TagSearchOptions.model_validate(dict(options))
    except pydantic.ValidationError as exc:
        log.warn("Invalid tag search options", {"error": errors.get_error_message(exc)})
        return None


def _compile(pattern: str, flags: int = 0) -> re.Pattern[str]:
    try:
        return re.compile(pattern, flags)
    except re.error as exc:
        raise _PatternError(f"{pattern!r}: {exc}") from exc


# ── Scanning ────────────────────────────────────────────────────


def _tag_regexes(tag_name: str, no_content: bool) -> tuple[re.Pattern[str], re.Pattern[str]]:
    """Return the opening and closing tag regexes for *tag_name*.

    The opening tag regex captures the whole attribute string in
    group 1.  Tags without content may be self-closing.
    """
    ending = r"(?:\s*/)?>" if no_content else r">"
    opening = _compile(rf"<(?:{tag_name})((?:\s+{text.ATTRIBUTE_PATTERN})*){ending}", re.IGNORECASE)
    closing = _compile(rf"</(?:{tag_name})\s*>", re.IGNORECASE)
    return opening, closing


def _parse_attributes(attribute_string: str) -> dict[str, str]:
    """Read ``name=value`` pairs; valueless attributes map to ``""``."""
    found: dict[str, str] = {}
    for match in _ATTRIBUTE_RE.finditer(attribute_string):
        name, double, single, bare = match.groups()
        found[name] = next((v for v in (double, single, bare) if v is not None), "")
    return found


def _attributes_match(found: dict[str, str], required: dict[str, str]) -> bool:
    """Check every required ``name pattern -> value pattern`` pair.

    A required name is first looked up as-is, then used as a regular
    expression against the found attribute names.  An empty value
    pattern only requires the attribute to be present.
    """
    for name_pattern, value_pattern in required.items():
        if name_pattern in found:
            candidates = [name_pattern]
        else:
            name_re = _compile(name_pattern)
            candidates = [name for name in found if name_re.search(name)]
            if not candidates:
                return False

        if not value_pattern:
            continue
        value_re = _compile(value_pattern)
        if not any(value_re.search(found[name]) for name in candidates):
            return False
    return True


def _find_closing(
    document: str,
    contents_start: int,
    opening: re.Pattern[str],
    closing: re.Pattern[str],
    no_nesting: bool,
) -> re.Match[str] | None:
    """Find the closing tag that matches an opening tag ending at *contents_start*.

    Without *no_nesting*, every nested opening tag of the same name
    found before a closing tag raises the depth by one and every
    closing tag lowers it; the match ends where the depth returns to
    zero.
    """
    if no_nesting:
        return closing.search(document, contents_start)

    depth = 1
    cursor = contents_start
    while True:
        close = closing.search(document, cursor)
        if close is None:
            return None
        depth += sum(1 for _ in opening.finditer(document, cursor, close.start()))
        depth -= 1
        if depth == 0:
            return close
        cursor = close.end()


def _name_for(match: tags.TagMatch, name_position: tags.NamePosition) -> str:
    """Derive a tag's name from its contents or one attribute value."""
    if name_position.type == "attribute":
        raw = match.attributes.get(name_position.name, "")
    else:
        raw = match.contents
    name = text.trim(raw)
    if name_position.regexp:
        found = _compile(name_position.regexp, re.IGNORECASE).search(name)
        if found is not None:
            name = found.group(min(1, found.re.groups)) or ""
    return name


def _scan(document: str, tag_name: str, opts: tags.TagSearchOptions) -> list[tags.TagMatch]:
    opening, closing = _tag_regexes(tag_name, opts.no_content)
    contents_re = _compile(opts.contents_reg_exp, re.IGNORECASE) if opts.contents_reg_exp else None

    found: list[tags.TagMatch] = []
    position = opts.position
    while opts.max_count <= 0 or len(found) < opts.max_count:
        open_match = opening.search(document, position)
        if open_match is None:
            break
        start, contents_start = open_match.span()
        if opts.debug:
            log.debug("Test match", {"tag": tag_name, "position": start, "text": open_match.group(0)[:500]})

        attributes = _parse_attributes(open_match.group(1))
        if not _attributes_match(attributes, opts.attributes):
            if opts.debug:
                log.debug("Attributes did not match", {"position": start, "attributes": attributes})
            position = contents_start
            continue

        if opts.no_content:
            contents = ""
            end = contents_start
        else:
            close_match = _find_closing(document, contents_start, opening, closing, opts.no_nesting)
            if close_match is None:
                if opts.debug:
                    log.debug("Closing tag not found", {"tag": tag_name, "position": start})
                position = contents_start
                continue
            contents = document[contents_start:close_match.start()]
            end = close_match.end()

        if contents_re is not None:
            contents_match = contents_re.search(contents)
            if contents_match is None:
                if opts.debug:
                    log.debug("Contents did not match", {"position": start, "contents": contents[:500]})
                position = contents_start
                continue
            contents = contents_match.group(1 if contents_re.groups else 0) or ""
        else:
            contents = contents.strip()

        match = tags.TagMatch(contents=contents, position=start, end_position=end, attributes=attributes)
        if opts.name_position is not None:
            match.name = _name_for(match, opts.name_position)
        found.append(match)
        position = end

    if opts.debug:
        log.debug("Tag search finished", {"tag": tag_name, "found": len(found)})
    return found


# ── Public API ──────────────────────────────────────────────────


def find_html_tags(document: str, tag_name: str, options: TagOptions = None) -> list[tags.TagMatch]:
    """Find top-level *tag_name* tags in *document*.

    *tag_name* is matched case-insensitively and may itself be a
    regular expression fragment (e.g. ``"t[dh]"``).  Supported options
    are described on :class:`~scriptapi.types.tags.TagSearchOptions`.

    Returns:
        The accepted matches in document order, at most ``maxCount``
        of them.  Invalid options or patterns yield an empty list.
    """
    opts = _coerce_options(options)
    if opts is None:
        return []
    try:
        return _scan(document, tag_name, opts)
    except _PatternError as exc:
        log.warn("Invalid pattern in tag search", {"tag": tag_name, "error": str(exc)})
        return []


def find_first_html_tag(document: str, tag_name: str, options: TagOptions = None) -> tags.TagMatch:
    """Like :func:`find_html_tags` but stops at the first accepted match.

    Returns a match with ``found=False`` when nothing matched.
    """
    opts = _coerce_options(options)
    if opts is None:
        return tags.TagMatch.not_found()
    results = find_html_tags(document, tag_name, opts.model_copy(update={"max_count": 1}))
    return results[0] if results else tags.TagMatch.not_found()


def find_named_html_tags(document: str, tag_name: str, options: TagOptions = None) -> tags.NamedTagMatches:
    """Find tags and key them by a name derived from each match.

    The name comes from the ``namePosition`` option (default: the
    trimmed contents).  Matches with an empty name are skipped.  When
    two matches share a name, ``ambiguousNameResolution`` decides:
    ``"replace"`` (default) keeps the later match, ``"addNumber"``
    renames the later one to ``name2``, ``name3``, ...
    """
    opts = _coerce_options(options)
    if opts is None:
        return tags.NamedTagMatches()
    name_position = opts.name_position or tags.NamePosition()
    found = find_html_tags(document, tag_name, opts.model_copy(update={"name_position": name_position}))

    result = tags.NamedTagMatches()
    for match in found:
        name = match.name or ""
        if not name:
            if opts.debug:
                log.debug("Skipping tag with empty name", {"position": match.position})
            continue
        if name in result.tags and opts.ambiguous_name_resolution == "addnumber":
            number = 2
            while f"{name}{number}" in result.tags:
                number += 1
            name = f"{name}{number}"
            match.name = name
        if name not in result.tags:
            result.names.append(name)
        result.tags[name] = match
    return result
