"""Scanners for PostgreSQL composite-row and array text encodings.

Composite rows are produced by the has-many subqueries as
``(v1,v2),(v3,v4)``; arrays use the native ``{v1,v2,NULL,"v,4"}`` form.

Both grammars share the same field rules:

- a field may be double-quoted; quoted fields may contain ``,``, ``(``, ``)``,
  braces and whitespace
- a backslash escapes the following character (so a quote preceded by an odd
  number of backslashes is literal)
- inside quotes a doubled quote ``""`` is a literal quote (composite output)

Malformed or empty input decodes to an empty list instead of raising.
"""
from __future__ import annotations

import json
from typing import Any, List, Optional, Tuple

__all__ = ['decode_composite_rows', 'decode_array', 'decode_json_array']


class _Malformed(ValueError):
    pass


def _scan_field(text: str, pos: int, stops: str) -> Tuple[str, bool, int]:
    """Read one field starting at ``pos`` up to (not including) a stop char.

    Returns ``(value, was_quoted, next_pos)``.
    """
    buf: List[str] = []
    quoted = False
    in_quotes = False
    n = len(text)
    while pos < n:
        ch = text[pos]
        if ch == '\\':
            if pos + 1 >= n:
                raise _Malformed('dangling escape')
            buf.append(text[pos + 1])
            pos += 2
            continue
        if in_quotes:
            if ch == '"':
                if pos + 1 < n and text[pos + 1] == '"':
                    buf.append('"')
                    pos += 2
                    continue
                in_quotes = False
            else:
                buf.append(ch)
            pos += 1
            continue
        if ch == '"':
            in_quotes = quoted = True
            pos += 1
            continue
        if ch in stops:
            break
        buf.append(ch)
        pos += 1
    if in_quotes:
        raise _Malformed('unterminated quote')
    return ''.join(buf), quoted, pos


def _scan_row(text: str, pos: int) -> Tuple[List[Optional[str]], int]:
    n = len(text)
    if pos >= n or text[pos] != '(':
        raise _Malformed('row must start with "("')
    pos += 1
    row: List[Optional[str]] = []
    while True:
        value, quoted, pos = _scan_field(text, pos, ',)')
        # unquoted empty field is NULL, "" is the empty string
        row.append(value if (quoted or value) else None)
        if pos >= n:
            raise _Malformed('unterminated row')
        ch = text[pos]
        pos += 1
        if ch == ')':
            return row, pos


def decode_composite_rows(text: Optional[str]) -> List[List[Optional[str]]]:
    """Decode ``(a,b),(c,d)`` into ``[['a', 'b'], ['c', 'd']]``."""
    if not text:
        return []
    rows: List[List[Optional[str]]] = []
    pos = 0
    n = len(text)
    try:
        while True:
            row, pos = _scan_row(text, pos)
            rows.append(row)
            if pos >= n:
                return rows
            if text[pos] != ',':
                raise _Malformed('expected "," between rows')
            pos += 1
    except _Malformed:
        return []


def decode_array(text: Optional[str]) -> List[Optional[str]]:
    """Decode a one-dimensional array literal ``{a,NULL,"b,c"}``."""
    if not text:
        return []
    s = text.strip()
    if s.startswith('['):
        # explicit bounds decoration: [0:2]={...}
        eq = s.find('=')
        if eq == -1:
            return []
        s = s[eq + 1:].strip()
    if len(s) < 2 or s[0] != '{' or s[-1] != '}':
        return []
    body = s[1:-1]
    if not body.strip():
        return []
    items: List[Optional[str]] = []
    pos = 0
    try:
        while True:
            value, quoted, pos = _scan_field(body, pos, ',')
            if not quoted:
                value = value.strip()
                if not value or '{' in value or '}' in value:
                    raise _Malformed('empty or nested element')
                if value.upper() == 'NULL':
                    items.append(None)
                else:
                    items.append(value)
            else:
                items.append(value)
            if pos >= len(body):
                return items
            pos += 1
    except _Malformed:
        return []


def decode_json_array(text: Optional[str]) -> List[Any]:
    """Decode ``array_to_json`` output; anything but a JSON list yields ``[]``."""
    if not text:
        return []
    try:
        value = json.loads(text)
    except ValueError:
        return []
    return value if isinstance(value, list) else []
