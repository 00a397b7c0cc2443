"""Upload ingestion and query service.

Ingestion runs as two phases against two logical stores:

1. content rows are read, normalized and committed to ``file_contents`` in a
   single transaction (all or nothing);
2. only after that commit, a ledger entry is written to ``uploads``.

If phase 2 fails the committed content rows stay in place and the failure is
reported to the caller. There is no cross-store transaction.
"""
import logging
import os
from typing import BinaryIO, Mapping

from sqlalchemy.orm import Session

from tickerfeed.cache import CacheInterface
from tickerfeed.config import Settings
from tickerfeed.constants import F_NAME, F_RPT_DT, F_TCKR_SYMB, F_UPLOADED_AT
from tickerfeed.crud import query_upload_history, search_file_content, to_upload_dict
from tickerfeed.errors import DuplicateUploadError
from tickerfeed.ledger import compute_file_hash, find_upload_by_hash, record_upload
from tickerfeed.normalize import normalize_rows
from tickerfeed.persist import persist_records
from tickerfeed.reader import read_csv
from tickerfeed.schemas import IngestResult, SearchResult, UploadOut
from tickerfeed.storage import LocalFileStorage

logger = logging.getLogger(__name__)


class UploadService:
    def __init__(self, db: Session, storage: LocalFileStorage, cache: CacheInterface, settings: Settings):
        self.db = db
        self.storage = storage
        self.cache = cache
        self.settings = settings

    def ingest(self, filename: str, fileobj: BinaryIO) -> IngestResult:
        """Store an uploaded file and ingest it. Never raises."""
        logger.info("Upload started: %s", filename)
        try:
            path = self.storage.save(filename, fileobj)
            full_path = self.storage.local_path(path)
        except Exception as exc:
            logger.exception("Could not store %s", filename)
            return IngestResult(success=False, message=str(exc))
        return self._ingest_stored(os.path.basename(path), path, full_path)

    def ingest_path(self, csv_path: str) -> IngestResult:
        """Ingest a CSV that is already on local disk, recording its own path."""
        logger.info("Ingest started: %s", csv_path)
        return self._ingest_stored(os.path.basename(csv_path), csv_path, csv_path)

    def _ingest_stored(self, name: str, path: str, full_path: str) -> IngestResult:
        file_hash = None
        try:
            if self.settings.reject_duplicate_uploads:
                file_hash = compute_file_hash(full_path)
                if find_upload_by_hash(self.db, file_hash) is not None:
                    raise DuplicateUploadError(file_hash)
            records = normalize_rows(read_csv(full_path))
            loaded = persist_records(self.db, records, chunk_size=self.settings.chunk_size)
        except Exception as exc:
            self.db.rollback()
            logger.error("Ingest of %s failed, transaction rolled back: %s", name, exc)
            return IngestResult(success=False, message=str(exc))

        try:
            if file_hash is None:
                file_hash = compute_file_hash(full_path)
            upload = record_upload(self.db, name=name, path=path, file_hash=file_hash)
        except Exception as exc:
            self.db.rollback()
            logger.warning(
                "%d rows from %s are committed but the ledger entry failed: %s", loaded, name, exc
            )
            return IngestResult(success=False, message=str(exc))

        logger.info("Ingest complete: %s, rows loaded: %d", name, loaded)
        return IngestResult(success=True, upload=UploadOut.model_validate(upload))

    def history(self, filters: Mapping) -> list[dict]:
        """Upload ledger entries, cached under one key for every filter combination."""
        def compute():
            uploads = query_upload_history(
                self.db,
                name=filters.get(F_NAME),
                uploaded_at=filters.get(F_UPLOADED_AT),
            )
            return [to_upload_dict(u) for u in uploads]

        return self.cache.get_or_compute(
            self.settings.history_cache_key, self.settings.history_cache_ttl, compute
        )

    def search(self, filters: Mapping, page: int = 1) -> SearchResult:
        return search_file_content(
            self.db,
            tckr_symb=filters.get(F_TCKR_SYMB),
            rpt_dt=filters.get(F_RPT_DT),
            page=page,
            per_page=self.settings.per_page,
        )
