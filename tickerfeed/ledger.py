import hashlib
import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from tickerfeed.constants import HASH_BLOCK_SIZE
from tickerfeed.errors import HashError
from tickerfeed.models import Upload

logger = logging.getLogger(__name__)


def compute_file_hash(file_path: str) -> str:
    h = hashlib.sha256()
    try:
        with open(file_path, "rb") as f:
            for chunk in iter(lambda: f.read(HASH_BLOCK_SIZE), b""):
                h.update(chunk)
    except OSError as exc:
        raise HashError(f"Could not read {file_path} for hashing: {exc}") from exc
    return h.hexdigest()


def record_upload(session: Session, name: str, path: str, file_hash: str) -> Upload:
    """Append one ledger entry in its own transaction and return it."""
    upload = Upload(
        name=name,
        hash=file_hash,
        path=path,
        uploaded_at=datetime.now(timezone.utc),
    )
    session.add(upload)
    session.commit()
    logger.info("Recorded upload %s (%s)", name, file_hash)
    return upload


def find_upload_by_hash(session: Session, file_hash: str) -> Upload | None:
    stmt = select(Upload).where(Upload.hash == file_hash).limit(1)
    return session.execute(stmt).scalars().first()
