from __future__ import annotations

import csv
from io import StringIO
from typing import Any, List, Optional, Sequence, Tuple

import numpy as np

from .errors import CoercionError, ParseError


class _Missing:
    """Marks a position a short row did not supply."""

    _instance: Optional[_Missing] = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()

Row = List[str]
Table = List[Row]


def parse_table(text: str, delimiter: str = "\t") -> Table:
    """
    Split a whole document into rows of string fields.

    Fields follow the usual quoting rules: a quoted field may hold the
    delimiter or a newline, and "" inside quotes is one quote. Blank lines
    produce no row.
    """
    if not delimiter:
        raise ParseError("Delimiter must not be empty.")

    if len(delimiter) > 1:
        return [row for row in _split_quoted(text, delimiter) if len(row) > 0]

    try:
        reader = csv.reader(StringIO(text, newline=""), delimiter=delimiter, strict=True)
    except (TypeError, ValueError, csv.Error) as e:
        raise ParseError(f"Invalid delimiter {delimiter!r}: {e}")

    try:
        table = [row for row in reader]
    except csv.Error as e:
        # line_num is the physical line the reader stopped on
        raise ParseError(f"Malformed input near line {reader.line_num}: {e}")

    return [row for row in table if len(row) > 0]


def _split_quoted(text: str, delimiter: str) -> Table:
    """Record splitting with quotes for delimiters the csv module cannot take."""
    rows: Table = []
    row: Row = []
    buf: List[str] = []
    quoted = False  # current field opened with a quote
    in_quotes = False
    i, n = 0, len(text)

    def fail(msg: str) -> ParseError:
        return ParseError(f"Malformed input near line {text.count(chr(10), 0, i) + 1}: {msg}")

    while i < n:
        c = text[i]
        if in_quotes:
            if c == '"':
                if text.startswith('"', i + 1):
                    buf.append('"')
                    i += 2
                    continue
                in_quotes = False
                i += 1
                if i < n and text[i] not in "\r\n" and not text.startswith(delimiter, i):
                    raise fail("text after closing quote")
                continue
            buf.append(c)
            i += 1
        elif c == '"':
            if buf or quoted:
                raise fail("quote inside unquoted field")
            quoted = in_quotes = True
            i += 1
        elif text.startswith(delimiter, i):
            row.append("".join(buf))
            buf, quoted = [], False
            i += len(delimiter)
        elif c in "\r\n":
            # a record ends; a line with nothing on it is an empty row
            if row or buf or quoted:
                row.append("".join(buf))
            rows.append(row)
            row, buf, quoted = [], [], False
            i += 2 if text.startswith("\r\n", i) else 1
        else:
            buf.append(c)
            i += 1

    if in_quotes:
        raise fail("unexpected end of data inside quotes")
    if row or buf or quoted:
        row.append("".join(buf))
        rows.append(row)
    return rows


def normalize(
    table: Table,
    want_headers: bool = False,
    transpose: bool = False,
) -> Tuple[List[List[Any]], Optional[List[str]]]:
    """
    Turn a table into a list of series plus optional headers.

    Column-major (default): every row is one observation. Rows may be
    ragged; every series gets the length of the data rows and short rows
    leave MISSING in the positions they do not reach.

    Row-major (transpose=True): every row already is one series. With
    headers, the first field of each row is that series' label.
    """
    rows = [list(r) for r in table]

    if transpose:
        if not want_headers:
            return rows, None
        labels = [r[0] if r else "" for r in rows]
        return [r[1:] for r in rows], labels

    headers: Optional[List[str]] = None
    if want_headers:
        headers = rows.pop(0) if rows else []

    # pass 1: widest row decides how many series there are
    width = max((len(r) for r in rows), default=0)
    if headers is not None:
        width = max(width, len(headers))
        headers = headers + [""] * (width - len(headers))

    # pass 2: fixed-length series, MISSING where a row is too short
    series: List[List[Any]] = [[MISSING] * len(rows) for _ in range(width)]
    for j, row in enumerate(rows):
        for i, value in enumerate(row):
            series[i][j] = value

    return series, headers


def coerce(series: Sequence[Any], series_index: Optional[int] = None) -> np.ndarray:
    """
    Convert a series of fields to floats.

    Empty fields and MISSING become NaN so statistics can skip them.
    Anything else that float() rejects is an error.
    """
    out = np.full(len(series), np.nan, dtype=float)
    for i, cell in enumerate(series):
        if cell is MISSING or cell is None:
            continue
        s = str(cell).strip()
        if s == "":
            continue
        try:
            out[i] = float(s)
        except ValueError:
            raise CoercionError(f"Non-numeric value {s!r}", series_index=series_index, position=i)
    return out
