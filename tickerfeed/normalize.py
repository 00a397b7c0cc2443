import re
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping

from tickerfeed.encoding import to_utf8
from tickerfeed.reader import RawRow

# Control characters and everything outside 7-bit ASCII (DEL is kept).
_KEY_NOISE = re.compile(r"[\x00-\x1f\x80-\U0010ffff]")

NormalizedRecord = Mapping[str, str]


def clean_key(key: str) -> str:
    """Trim a header name and drop control and non-ASCII characters."""
    return _KEY_NOISE.sub("", key.strip())


def clean_value(value: str | None) -> str:
    """Trim a field value and re-encode it as UTF-8. None becomes ""."""
    if value is None:
        value = ""
    return to_utf8(value.strip())


def normalize_row(row: RawRow) -> NormalizedRecord:
    """Clean keys and values of a RawRow into a read-only NormalizedRecord.

    Keys that collapse to the same cleaned name keep the last value.
    """
    return MappingProxyType({clean_key(k): clean_value(v) for k, v in row.items()})


def normalize_rows(rows: Iterable[RawRow]) -> Iterator[NormalizedRecord]:
    for row in rows:
        yield normalize_row(row)
