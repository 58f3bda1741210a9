"""Transformations over a stream of records.

All of these consume the stream once and produce a new one lazily, nothing is
materialized until the result is written or printed.
"""

import datetime
from typing import Iterable, Iterator, List, Optional, Tuple

from secretstore.codec import Record

DEFAULT_DATE_FORMAT = "%Y-%m-%d %I:%M%p %Z"


def list_records(records: Iterable[Record]) -> Iterator[Tuple[bytes, int]]:
    for record in records:
        yield record.key, record.modified_at


def sorted_listing(records: Iterable[Record]) -> List[Tuple[bytes, int]]:
    return sorted(list_records(records), key=lambda item: item[0])


def extract(records: Iterable[Record], key: bytes) -> Optional[bytes]:
    """Return the value of the first record for `key` or None."""
    for record in records:
        if record.key == key:
            return record.value
    return None


def filter_out(records: Iterable[Record], key: bytes) -> Iterator[Record]:
    for record in records:
        if record.key != key:
            yield record


def set_record(
    records: Iterable[Record], key: bytes, value: bytes, now: int
) -> Iterator[Record]:
    yield from filter_out(records, key)
    yield Record(key, int(now), value)


def del_record(records: Iterable[Record], key: bytes) -> Iterator[Record]:
    return filter_out(records, key)


def format_date(timestamp: int, date_format: str = DEFAULT_DATE_FORMAT) -> str:
    moment = datetime.datetime.fromtimestamp(timestamp).astimezone()
    return moment.strftime(date_format)
