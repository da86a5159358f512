"""
app/parsing/csv_parser.py

Delimited-text parsing for admin uploads.

Physical lines are joined into one record until the number of quote
characters seen in the record is even, so a quoted field may span line
breaks. Inside a record, a quote toggles quoting wherever it appears, the
delimiter only splits fields outside quotes, and ``""`` inside a quoted
field is one literal quote. Fields are whitespace-trimmed and blank
records are never emitted.
"""

from __future__ import annotations

from collections.abc import Iterator

QUOTE = '"'


class TabularParseError(ValueError):
    """
    Raised when raw upload content cannot be decoded or tokenised.
    """


def decode_upload(content: bytes) -> str:
    """
    Decode uploaded bytes as UTF-8, dropping a leading byte-order mark.
    """

    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise TabularParseError("CSV must be UTF-8 encoded.") from exc


def iter_rows(text: str, *, delimiter: str = ",") -> Iterator[list[str]]:
    """
    Lazily yield one list of trimmed field strings per record in ``text``.

    Re-invoking on the same text restarts from the beginning; no state is
    kept between calls. An unterminated quoted field at end of input is
    closed on a best-effort basis rather than rejected.
    """

    if len(delimiter) != 1 or delimiter == QUOTE:
        raise TabularParseError("Delimiter must be a single character other than a quote.")
    if not text or not text.strip():
        return

    normalized = text.replace("\r\n", "\n").replace("\r", "\n")
    pending: list[str] = []
    in_quotes = False

    for line in normalized.split("\n"):
        if line.count(QUOTE) % 2:
            in_quotes = not in_quotes
        pending.append(line)
        if in_quotes:
            continue

        record = "\n".join(pending)
        pending = []
        if record.strip():
            yield split_fields(record, delimiter=delimiter)

    if pending:
        record = "\n".join(pending)
        if record.strip():
            yield split_fields(record, delimiter=delimiter)


def split_fields(record: str, *, delimiter: str = ",") -> list[str]:
    """
    Tokenise one logical record into trimmed fields.
    """

    fields: list[str] = []
    current: list[str] = []
    in_quotes = False
    index = 0

    while index < len(record):
        char = record[index]
        if in_quotes:
            if char == QUOTE:
                if record[index + 1 : index + 2] == QUOTE:
                    current.append(QUOTE)
                    index += 2
                    continue
                in_quotes = False
            else:
                current.append(char)
        elif char == QUOTE:
            in_quotes = True
        elif char == delimiter:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(char)
        index += 1

    fields.append("".join(current).strip())
    return fields


def parse_csv(text: str, *, delimiter: str = ",") -> list[list[str]]:
    return list(iter_rows(text, delimiter=delimiter))


def parse_csv_with_headers(text: str, *, delimiter: str = ",") -> tuple[list[str], list[list[str]]]:
    """
    Split parsed content into (header, data rows). Empty input gives ([], []).
    """

    rows = parse_csv(text, delimiter=delimiter)
    if not rows:
        return [], []
    return rows[0], rows[1:]
