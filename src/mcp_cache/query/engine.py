"""Search and chunk extraction over cached values.

Everything here is a pure function of its arguments. JSONPath runs against the
structured value; text and regex search run line by line over the canonical
indented rendering, the same text that chunking slices.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from functools import partial
from typing import Any

from jsonpath_ng.exceptions import JSONPathError
from jsonpath_ng.ext import parse as parse_jsonpath

from mcp_cache.core.errors import ChunkRangeError, QueryError
from mcp_cache.query.models import ChunkResult, QueryMode, QueryOptions, QueryResult
from mcp_cache.query.render import JsonValue, count_chunks, render_canonical

_REGEX_LITERAL = re.compile(r"/(?P<pattern>.*)/(?P<flags>[gimsuy]*)", re.DOTALL)

_REGEX_FLAGS = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    # Matching is always global and per line; unicode is Python's default.
    "g": 0,
    "u": 0,
    "y": 0,
}


def detect_mode(query: str) -> QueryMode:
    """Pick a mode from the query's shape: ``$...``, ``/.../flags`` or plain text."""
    if query.startswith("$"):
        return QueryMode.JSONPATH
    if _REGEX_LITERAL.fullmatch(query):
        return QueryMode.REGEX
    return QueryMode.TEXT


def compile_regex(query: str, *, case_sensitive: bool = False) -> re.Pattern[str]:
    """Compile ``/pattern/flags`` (or a bare pattern) into a Python regex.

    Without explicit flags the pattern is case-insensitive unless
    ``case_sensitive`` is set. Explicit flags are honoured exactly.

    Raises:
        QueryError: Invalid pattern.
    """
    literal = _REGEX_LITERAL.fullmatch(query)
    pattern, flag_chars = (literal["pattern"], literal["flags"]) if literal else (query, "")

    if flag_chars:
        flags = 0
        for char in flag_chars:
            flags |= _REGEX_FLAGS[char]
    else:
        flags = 0 if case_sensitive else re.IGNORECASE

    try:
        return re.compile(pattern, flags)
    except re.error as e:
        raise QueryError.invalid(f"Regex query failed: {e}", query=query) from e


def query(value: JsonValue, query_string: str, options: QueryOptions | None = None) -> QueryResult:
    """Run a query and return one page of matches.

    Raises:
        QueryError: Malformed expression or invalid paging options.
    """
    options = options or QueryOptions()
    _validate_options(options)

    mode = QueryMode(options.mode) if options.mode else detect_mode(query_string)
    if mode is QueryMode.JSONPATH:
        matches = _query_jsonpath(value, query_string)
    else:
        lines = _Lines.from_value(value)
        if mode is QueryMode.REGEX:
            regex = compile_regex(query_string, case_sensitive=options.case_sensitive)
            matcher = partial(_regex_matcher, regex)
        else:
            matcher = partial(_text_matcher, query_string, options.case_sensitive)
        matches = _search_lines(lines, options, matcher)

    return _paginate(matches, options)


def extract_chunk(value: JsonValue, chunk_number: int, chunk_size: int) -> ChunkResult:
    """Return slice ``chunk_number`` of the canonical rendering.

    Raises:
        ChunkRangeError: chunk_number outside ``0 .. total_chunks - 1``.
        ValueError: chunk_size is not positive.
    """
    text = render_canonical(value)
    total_chunks = count_chunks(len(text), chunk_size)
    if chunk_number < 0 or chunk_number >= total_chunks:
        raise ChunkRangeError.out_of_range(chunk_number, total_chunks)

    start = chunk_number * chunk_size
    return ChunkResult(
        chunk=text[start : start + chunk_size],
        chunk_number=chunk_number,
        total_chunks=total_chunks,
    )


# =============================================================================
# Internals
# =============================================================================


@dataclass(frozen=True)
class _Lines:
    """Canonical rendering split into lines, with each line's start offset."""

    lines: list[str]
    offsets: list[int]

    @classmethod
    def from_value(cls, value: JsonValue) -> _Lines:
        lines = render_canonical(value).split("\n")
        offsets = []
        position = 0
        for line in lines:
            offsets.append(position)
            position += len(line) + 1
        return cls(lines=lines, offsets=offsets)


def _validate_options(options: QueryOptions) -> None:
    if options.limit <= 0:
        raise QueryError.invalid(f"limit must be positive, got {options.limit}")
    if options.offset < 0:
        raise QueryError.invalid(f"offset must not be negative, got {options.offset}")
    if options.context_lines < 0:
        raise QueryError.invalid(
            f"context_lines must not be negative, got {options.context_lines}"
        )
    if options.chunk_size is not None and options.chunk_size <= 0:
        raise QueryError.invalid(f"chunk_size must be positive, got {options.chunk_size}")


def _query_jsonpath(value: JsonValue, expression: str) -> list[Any]:
    try:
        compiled = parse_jsonpath(expression)
    except (JSONPathError, ValueError) as e:
        raise QueryError.invalid(f"JSONPath query failed: {e}", query=expression) from e
    try:
        return [match.value for match in compiled.find(value)]
    except Exception as e:
        # Filter expressions can fail on arbitrary data (mixed-type comparisons etc.)
        raise QueryError.invalid(f"JSONPath query failed: {e}", query=expression) from e


def _regex_matcher(regex: re.Pattern[str], line: str) -> str | bool:
    found = regex.search(line)
    return found.group(0) if found else False


def _text_matcher(needle: str, case_sensitive: bool, line: str) -> bool:
    if case_sensitive:
        return needle in line
    return needle.lower() in line.lower()


def _search_lines(
    lines: _Lines,
    options: QueryOptions,
    matcher: Callable[[str], str | bool],
) -> list[dict[str, Any]]:
    """Collect line matches. ``matcher`` returns False, True, or the matched text."""
    matches: list[dict[str, Any]] = []
    all_lines = lines.lines
    context = options.context_lines
    for index, line in enumerate(all_lines):
        hit = matcher(line)
        if hit is False:
            continue

        entry: dict[str, Any] = {"line": index + 1, "content": line.strip()}
        if isinstance(hit, str):
            entry["match"] = hit
        if options.chunk_size is not None:
            entry["chunk"] = lines.offsets[index] // options.chunk_size
        entry["context"] = {
            "before": [ln.strip() for ln in all_lines[max(0, index - context) : index]],
            "after": [ln.strip() for ln in all_lines[index + 1 : index + 1 + context]],
        }
        matches.append(entry)
    return matches


def _paginate(matches: list[Any], options: QueryOptions) -> QueryResult:
    return QueryResult(
        results=matches[options.offset : options.offset + options.limit],
        total=len(matches),
        limit=options.limit,
        offset=options.offset,
    )
