"""Named-parameter translation: ``:name`` tokens → dialect placeholders.

A single tokenizer regex walks the SQL once. Quoted strings, quoted
identifiers, comments, dollar-quoted bodies and ``::type`` casts are matched
as opaque literals so a colon inside them is never taken for a parameter.
Only the ``param`` alternative is rewritten.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from typing import Any

from newbility_db.errors import MissingParameterError

PlaceholderFor = Callable[[str, int], str]

_TOKEN_PATTERN = r"""
    (?P<squote>'(?:{squote_body}|'')*') |
    (?P<dquote>"(?:{dquote_body}|"")*") |
    (?P<backtick>`[^`]*`) |
    (?P<dollar>\$\$[\s\S]*?\$\$) |
    (?P<tagged_dollar>\$(?P<tag>[A-Za-z_]\w*)\$[\s\S]*?\$(?P=tag)\$) |
    (?P<line_comment>--[^\r\n]*) |
    (?P<block_comment>/\*[\s\S]*?\*/) |
    (?P<cast>::+) |
    (?<!['"`])(?P<param>:(?P<name>\w+))(?!['"`\w])
"""

# Standard SQL (PostgreSQL, SQLite): a backslash inside quotes is literal text
_TOKEN_RE = re.compile(
    _TOKEN_PATTERN.format(squote_body=r"[^']", dquote_body=r'[^"]'), re.VERBOSE
)
# MySQL: a backslash escapes the next character inside quotes
_BACKSLASH_TOKEN_RE = re.compile(
    _TOKEN_PATTERN.format(squote_body=r"[^'\\]|\\.", dquote_body=r'[^"\\]|\\.'), re.VERBOSE
)


def _token_re(backslash_escapes: bool) -> re.Pattern[str]:
    return _BACKSLASH_TOKEN_RE if backslash_escapes else _TOKEN_RE


def find_parameters(sql: str, *, backslash_escapes: bool = False) -> list[str]:
    """Return the named parameters referenced by ``sql``, in textual order."""
    tokens = _token_re(backslash_escapes).finditer(sql)
    return [m.group("name") for m in tokens if m.group("name") is not None]


def translate(
    sql: str,
    params: Mapping[str, Any],
    placeholder_for: PlaceholderFor,
    *,
    escape_text: Callable[[str], str] | None = None,
    backslash_escapes: bool = False,
) -> tuple[str, list[Any]]:
    """Rewrite ``:name`` tokens into positional placeholders.

    Returns the rewritten SQL and the ordered argument list. Each token
    occurrence takes its own slot, so a name used twice is bound twice.
    ``placeholder_for`` receives the name and the 0-based slot index.
    ``escape_text`` is applied to every fragment that is copied through
    unchanged, and only when at least one value is bound (MySQL uses it to
    double ``%``, which its driver only interpolates when given arguments).
    With ``backslash_escapes`` a backslash inside a quoted literal escapes
    the next character (MySQL); otherwise it is ordinary text.

    Raises MissingParameterError if a token has no key in ``params``. A key
    whose value is ``None`` binds SQL NULL.
    """
    values: list[Any] = []
    pieces: list[str] = []
    last = 0
    for match in _token_re(backslash_escapes).finditer(sql):
        name = match.group("name")
        if name is None:
            continue
        if name not in params:
            raise MissingParameterError(name)
        pieces.append(sql[last : match.start()])
        values.append(params[name])
        pieces.append(placeholder_for(name, len(values) - 1))
        last = match.end()
    pieces.append(sql[last:])

    if escape_text is not None and values:
        # Placeholders sit at odd indexes; only literal text is escaped
        pieces = [p if i % 2 else escape_text(p) for i, p in enumerate(pieces)]
    return "".join(pieces), values
