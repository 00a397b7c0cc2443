"""Lazy CSV reading for instrument exports.

The first physical line of every file is a banner (report title) and is
discarded; the second line is the header.
"""
import csv
import logging
from typing import Iterator

from tickerfeed.constants import COMMA, QUOTE_CHAR, SEMICOLON
from tickerfeed.encoding import sniff_file_encoding, to_utf8
from tickerfeed.errors import CsvIOError, FormatError

logger = logging.getLogger(__name__)

# Header name -> raw field; None when the row is shorter than the header.
RawRow = dict[str, str | None]


def detect_separator(path: str) -> str:
    """Return ';' if the first line of the file contains one, else ','.

    Only the first line is inspected; the rest of the file is not checked
    for consistency.
    """
    try:
        with open(path, "rb") as f:
            line = f.readline()
    except OSError as exc:
        raise CsvIOError(f"Could not open CSV file: {path}") from exc
    return SEMICOLON if SEMICOLON.encode() in line else COMMA


def zip_row(header: list[str], row: list[str]) -> RawRow:
    """Pair row values with header names by position.

    Missing trailing values become None; surplus values are dropped.
    """
    return {name: (row[i] if i < len(row) else None) for i, name in enumerate(header)}


def read_csv(path: str) -> Iterator[RawRow]:
    """Yield one RawRow per data line of the CSV at `path`.

    The generator is single-pass. The file handle is closed when it is
    exhausted, closed early, or fails. Cells come back as text; bytes that
    are not valid in the detected codec are recovered per cell (see
    `tickerfeed.encoding.to_utf8`) rather than replaced.

    Raises:
        CsvIOError: the file cannot be opened or read.
        FormatError: the header row is missing or the CSV is malformed.
    """
    separator = detect_separator(path)
    try:
        encoding = sniff_file_encoding(path)
        f = open(path, newline="", encoding=encoding, errors="surrogateescape")
    except OSError as exc:
        raise CsvIOError(f"Could not open CSV file: {path}") from exc

    logger.info("Reading %s (separator=%r, encoding=%s)", path, separator, encoding)
    with f:
        reader = csv.reader(f, delimiter=separator, quotechar=QUOTE_CHAR)
        try:
            next(reader, None)  # banner
            header = next(reader, None)
            if header is None:
                raise FormatError("Could not read the CSV header row.")
            header = [to_utf8(cell, encoding) for cell in header]
            for row in reader:
                # recover cells holding bytes the file codec could not decode
                yield zip_row(header, [to_utf8(cell, encoding) for cell in row])
        except csv.Error as exc:
            raise FormatError(f"Malformed CSV at line {reader.line_num}: {exc}") from exc
        except OSError as exc:
            raise CsvIOError(f"Could not read CSV file: {path}") from exc
