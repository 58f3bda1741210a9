"""Line format of the plaintext secrets store.

Every record is one line holding three space separated tokens::

    <key> <timestamp> <value>\\n

Each token is percent-encoded: every byte except ASCII letters, digits and
``_.~-`` is written as ``%XX``. Whitespace, newlines, ``%`` and quotes thus
never appear raw inside a token and the single spaces between tokens are the
only separators. An empty token is written as ``''``.
"""

import urllib.parse
from typing import Iterable, Iterator, NamedTuple, Optional

from secretstore import RecordDecodeError

EMPTY_TOKEN = b"''"


class Record(NamedTuple):
    key: bytes
    modified_at: int
    value: bytes


def escape(data: bytes) -> bytes:
    if not data:
        return EMPTY_TOKEN
    return urllib.parse.quote_from_bytes(data, safe="").encode("ascii")


def unescape(token: bytes) -> bytes:
    if token == EMPTY_TOKEN:
        return b""
    return urllib.parse.unquote_to_bytes(token)


def encode(key: bytes, timestamp: int, value: bytes) -> bytes:
    """Return the store line (including the newline) for one record."""
    timestamp = int(timestamp)
    if timestamp < 0:
        raise ValueError(f"Timestamp must not be negative: {timestamp}")
    return b" ".join(
        [escape(key), escape(str(timestamp).encode("ascii")), escape(value)]
    ) + b"\n"


def decode(line: bytes, lineno: int = 0) -> Optional[Record]:
    """Parse one store line.

    Returns ``None`` for a blank line, which marks the end of the stream.

    """
    # Escaped tokens never end in raw whitespace.
    line = line.rstrip()
    if not line.strip():
        return None
    tokens = line.split(b" ")
    if len(tokens) != 3:
        raise RecordDecodeError.from_context(
            lineno, f"expected 3 fields, got {len(tokens)}"
        )
    key, timestamp, value = [unescape(t) for t in tokens]
    if not timestamp.isdigit():
        raise RecordDecodeError.from_context(
            lineno, f"invalid timestamp {timestamp!r}"
        )
    return Record(key, int(timestamp), value)


def iter_records(plaintext: bytes) -> Iterator[Record]:
    for lineno, line in enumerate(plaintext.split(b"\n"), start=1):
        record = decode(line, lineno)
        if record is None:
            return
        yield record


def serialize(records: Iterable[Record]) -> bytes:
    return b"".join(
        encode(r.key, r.modified_at, r.value) for r in records
    )


def display(data: bytes) -> str:
    """Render a key as a single line of text for listings."""
    text = data.decode("utf-8", errors="backslashreplace")
    if text.isprintable():
        return text
    return "".join(
        c if c.isprintable() else c.encode("unicode_escape").decode("ascii")
        for c in text
    )
