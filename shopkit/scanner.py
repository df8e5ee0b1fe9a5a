"""
Delimited-text scanning and rendering.

Product descriptions legitimately contain line breaks, so the import side
cannot split on newlines first. iter_rows walks the text one character at
a time with two states:

    NORMAL    ','  -> flush cell
              '\\n' / '\\r\\n' / '\\r' -> flush cell, flush row
              '"'  -> IN_QUOTE
    IN_QUOTE  '""' -> literal '"'
              '"'  -> NORMAL
              anything else (including ',' and newlines) is cell content
"""

import csv
import io
import logging
import re
from enum import Enum
from typing import Iterable, Iterator, List, Sequence

import chardet

logger = logging.getLogger(__name__)

UTF8_BOM = "\ufeff"

# "price（必須・数値）" -> "price", "stock (number)" -> "stock"
_HEADER_HINT_RE = re.compile(r"^([^(（]*)[(（].*$", re.DOTALL)


class _State(Enum):
    NORMAL = "normal"
    IN_QUOTE = "in_quote"


def iter_rows(text: str) -> Iterator[List[str]]:
    """Lazily scan delimited text into rows of string cells.

    Args:
        text: Full document text. A leading byte-order mark is ignored.

    Yields:
        One list of cells per row. Blank lines are skipped; the last row is
        yielded even without a trailing newline.
    """
    if text.startswith(UTF8_BOM):
        text = text[1:]

    state = _State.NORMAL
    row: List[str] = []
    cell: List[str] = []
    # whether the current row has seen anything at all (content, quotes or
    # delimiters); an empty quoted cell still makes a row
    touched = False

    i = 0
    length = len(text)
    while i < length:
        char = text[i]

        if state is _State.IN_QUOTE:
            if char == '"':
                if i + 1 < length and text[i + 1] == '"':
                    cell.append('"')
                    i += 1
                else:
                    state = _State.NORMAL
            else:
                cell.append(char)

        elif char == '"':
            state = _State.IN_QUOTE
            touched = True

        elif char == ",":
            row.append("".join(cell))
            cell = []
            touched = True

        elif char == "\r" or char == "\n":
            if char == "\r" and i + 1 < length and text[i + 1] == "\n":
                i += 1
            if touched or cell:
                row.append("".join(cell))
                yield row
            row = []
            cell = []
            touched = False

        else:
            cell.append(char)
            touched = True

        i += 1

    if state is _State.IN_QUOTE:
        logger.warning("Unterminated quoted cell at end of input; keeping partial cell")

    if touched or cell:
        row.append("".join(cell))
        yield row


def parse_text(text: str) -> List[List[str]]:
    """Eager form of iter_rows."""
    return list(iter_rows(text))


def strip_header_hint(name: str) -> str:
    """Remove a parenthesized hint (ASCII or full-width) from a header name.

    Args:
        name: Raw header cell, e.g. "sku（必須・数字の先頭に'をつける）"

    Returns:
        The bare column name, e.g. "sku"
    """
    trimmed = name.strip()
    match = _HEADER_HINT_RE.match(trimmed)
    if match and match.group(1).strip():
        return match.group(1).strip()
    return trimmed


def decode_document(data: bytes) -> str:
    """Decode an uploaded document to text.

    UTF-8 with or without BOM is the normal case. Spreadsheets saved by
    Japanese Excel are often CP932, so anything that is not valid UTF-8 goes
    through chardet.
    """
    if data.startswith(b"\xef\xbb\xbf"):
        return data.decode("utf-8-sig")

    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        pass

    result = chardet.detect(data[:100000])
    encoding = result.get("encoding") or "utf-8"
    logger.info(f"Document is not UTF-8; decoding as {encoding} (confidence {result.get('confidence')})")
    try:
        return data.decode(encoding)
    except (UnicodeDecodeError, LookupError) as e:
        raise ValueError(f"Could not decode document as {encoding}: {e}")


def render_csv(rows: Iterable[Sequence[object]], bom: bool = False) -> str:
    """Render rows as CSV text.

    Cells containing ',', '"', CR or LF are quoted and internal quotes are
    doubled; everything else is written bare. None becomes an empty cell.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\r\n")
    for row in rows:
        writer.writerow(["" if value is None else value for value in row])
    text = buffer.getvalue()
    return UTF8_BOM + text if bom else text
