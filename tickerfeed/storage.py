import logging
import os
import shutil
from pathlib import Path
from typing import BinaryIO

from tickerfeed.constants import UPLOAD_DIR

logger = logging.getLogger(__name__)


class LocalFileStorage:
    """Stores uploaded files under `<root>/uploads/`, keeping the client file name.

    `save` returns the logical path recorded in the ledger (``uploads/x.csv``);
    `local_path` resolves it to a readable file for parsing and hashing.
    A second upload with the same name replaces the stored blob.
    """

    def __init__(self, root: str):
        self.root = Path(root)
        (self.root / UPLOAD_DIR).mkdir(parents=True, exist_ok=True)

    def save(self, filename: str, fileobj: BinaryIO) -> str:
        # Never let a client-supplied name escape the upload directory
        name = os.path.basename(filename.replace("\\", "/")) or "upload.csv"
        logical = f"{UPLOAD_DIR}/{name}"
        with open(self.local_path(logical), "wb") as out:
            shutil.copyfileobj(fileobj, out)
        logger.debug("Stored %s as %s", filename, logical)
        return logical

    def local_path(self, path: str) -> str:
        return str(self.root / path)
