"""
Palm_Task.utils.delimited

Quote-aware tokenizer for the published spreadsheet CSV exports.

The exports are small and occasionally messy (free-text descriptions with
commas, quotes and line breaks), so this is a single forward pass over the
text instead of the stdlib csv module. Header handling is left to the
decoders: every row, including row 0, is returned.
"""

from __future__ import annotations

from typing import Iterable, List, Sequence

QUOTE = '"'


def parse_rows(text: str, delimiter: str = ",") -> List[List[str]]:
    """
    Split raw delimited text into rows of string fields.

    - fields may be wrapped in double quotes; delimiters and line breaks
      inside quotes are literal
    - a doubled quote inside a quoted field is one literal quote
    - \\n, \\r and \\r\\n all end a row (counted as one terminator)
    - a last row without a terminator is still emitted

    Never raises. An unbalanced quote keeps the rest of the input in the
    current field.
    """
    if len(delimiter) != 1:
        raise ValueError(f"Delimiter must be a single character, got {delimiter!r}")

    rows: List[List[str]] = []
    row: List[str] = []
    field: List[str] = []
    in_quote = False
    i = 0
    n = len(text)

    while i < n:
        ch = text[i]

        if ch == QUOTE:
            if in_quote and i + 1 < n and text[i + 1] == QUOTE:
                field.append(QUOTE)
                i += 1
            else:
                in_quote = not in_quote
        elif ch == delimiter and not in_quote:
            row.append("".join(field))
            field = []
        elif ch in "\r\n" and not in_quote:
            if ch == "\r" and i + 1 < n and text[i + 1] == "\n":
                i += 1
            row.append("".join(field))
            rows.append(row)
            row = []
            field = []
        else:
            field.append(ch)
        i += 1

    # trailing fragment; an empty one (text ended on a terminator) is not a row
    if field or row:
        row.append("".join(field))
        rows.append(row)

    return rows


def _quote_field(value: str, delimiter: str) -> str:
    if any(c in value for c in (delimiter, QUOTE, "\r", "\n")):
        return QUOTE + value.replace(QUOTE, QUOTE * 2) + QUOTE
    return value


def encode_rows(rows: Iterable[Sequence[str]], delimiter: str = ",") -> str:
    """
    Inverse of parse_rows: quote only where needed, \\n between rows.
    """
    lines = []
    for row in rows:
        lines.append(delimiter.join(_quote_field(str(v), delimiter) for v in row))
    return "\n".join(lines) + ("\n" if lines else "")
