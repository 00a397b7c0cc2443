class IngestionError(Exception):
    """Base class for failures raised while ingesting a CSV upload."""


class CsvIOError(IngestionError, OSError):
    """The source file could not be opened or read."""


class FormatError(IngestionError):
    """The CSV is structurally unusable (no header row)."""


class PersistenceError(IngestionError):
    """A bulk insert or the surrounding transaction failed."""


class HashError(IngestionError):
    """The stored file could not be read to compute its content hash."""


class DuplicateUploadError(IngestionError):
    """A file with the same content hash was already ingested."""

    def __init__(self, file_hash: str):
        self.file_hash = file_hash
        super().__init__(f"File already ingested (hash {file_hash})")
