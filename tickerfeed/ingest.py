import argparse
import sys

from .config import get_settings
from .database import SessionLocal, create_tables
from .cache import MemoryCache
from .logging_config import configure_logging
from .schemas import IngestResult
from .service import UploadService
from .storage import LocalFileStorage


def run(csv_path: str) -> IngestResult:
    """Ingest a local CSV file and record it in the ledger."""
    settings = get_settings()
    create_tables()
    with SessionLocal() as session:
        service = UploadService(
            db=session,
            storage=LocalFileStorage(settings.storage_root),
            cache=MemoryCache(),
            settings=settings,
        )
        return service.ingest_path(csv_path)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Ingest an instrument CSV export")
    parser.add_argument("--csv", required=True, help="Path to the CSV file")
    args = parser.parse_args()
    configure_logging(get_settings().log_level)
    result = run(args.csv)
    if not result.success:
        print(f"Ingest failed: {result.message}", file=sys.stderr)
        sys.exit(1)
    print(f"Ingest complete. Upload {result.upload.id}, hash {result.upload.hash}")
