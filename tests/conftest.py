import os
import tempfile

# Point the app at an isolated database and storage root BEFORE it is imported.
_tmp_dir = tempfile.mkdtemp(prefix="tickerfeed_test_")
_tmp_db_path = os.path.join(_tmp_dir, "tickerfeed_test.db")
os.environ["DATABASE_URL"] = f"sqlite:///{_tmp_db_path}"
os.environ["STORAGE_ROOT"] = os.path.join(_tmp_dir, "storage")
os.environ["REJECT_DUPLICATE_UPLOADS"] = "false"

import pandas as pd
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from tickerfeed.cache import MemoryCache
from tickerfeed.config import Settings
from tickerfeed.models import Base
from tickerfeed.service import UploadService
from tickerfeed.storage import LocalFileStorage

BANNER = "Cadastro de Instrumentos (Listado)"


def write_export(path, rows, sep=";", banner=BANNER, encoding="utf-8"):
    """Write an export CSV: a banner line ending in the separator, then header and rows."""
    with open(path, "w", encoding=encoding, newline="") as f:
        f.write(f"{banner}{sep}\n")
        pd.DataFrame(rows).to_csv(f, sep=sep, index=False, lineterminator="\n")
    return str(path)


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def db_session(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'unit.db'}")
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    with Session() as session:
        yield session
    engine.dispose()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_service(db_session, tmp_path, clock):
    def factory(**overrides):
        settings = Settings(storage_root=str(tmp_path / "storage"), **overrides)
        return UploadService(
            db=db_session,
            storage=LocalFileStorage(settings.storage_root),
            cache=MemoryCache(clock=clock),
            settings=settings,
        )
    return factory
