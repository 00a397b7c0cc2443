"""Chunked, all-or-nothing bulk insert of normalized records."""
import logging
from typing import Iterable, Iterator

import pandas as pd
from sqlalchemy import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tickerfeed.constants import DEFAULT_CHUNK_SIZE, FILE_CONTENT_FIELDS
from tickerfeed.errors import PersistenceError
from tickerfeed.models import FileContent
from tickerfeed.normalize import NormalizedRecord

logger = logging.getLogger(__name__)


def project_records(records: Iterable[NormalizedRecord]) -> list[dict]:
    """Project records onto exactly the file_contents columns, in order.

    Absent keys map to None and any other key is dropped.
    """
    df = pd.DataFrame.from_records([dict(r) for r in records])
    df = df.reindex(columns=FILE_CONTENT_FIELDS)
    return [
        {k: (None if pd.isna(v) else v) for k, v in rec.items()}
        for rec in df.astype(object).to_dict("records")
    ]


def chunked(rows: list[dict], size: int) -> Iterator[list[dict]]:
    if size <= 0:
        raise ValueError("chunk size must be positive")
    for start in range(0, len(rows), size):
        yield rows[start:start + size]


def insert_chunk(session: Session, chunk: list[dict]) -> None:
    session.execute(insert(FileContent), chunk)


def persist_records(
    session: Session,
    records: Iterable[NormalizedRecord],
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> int:
    """Insert all records in chunks inside one transaction and commit.

    Either every row is committed or none is.

    Args:
        session: SQLAlchemy Session with no transaction in progress.
        records: ordered normalized records; consumed fully before inserting.
        chunk_size: rows per bulk insert statement.

    Returns:
        Number of rows committed.

    Raises:
        PersistenceError: if any chunk insert or the commit fails.
    """
    rows = project_records(records)
    chunks = list(chunked(rows, chunk_size))
    try:
        for n, chunk in enumerate(chunks, start=1):
            insert_chunk(session, chunk)
            logger.debug("Inserted chunk %d/%d (%d rows)", n, len(chunks), len(chunk))
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error("Bulk insert rolled back: %s", exc)
        raise PersistenceError(str(exc)) from exc
    logger.info("Committed %d rows in %d chunks", len(rows), len(chunks))
    return len(rows)
