from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from .config import DATABASE_URL

engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {},
    pool_pre_ping=True,
)
# Uploads are returned to callers after commit, so keep their loaded state.
SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
Base = declarative_base()


def create_tables() -> None:
    """Create missing tables. There is no migration tooling; this is additive only."""
    # models must be imported so their tables are registered on Base.metadata
    from . import models  # noqa: F401
    Base.metadata.create_all(bind=engine)


def get_db():
    """Yield a Session for one request and close it afterwards.

    Usage:
        as a FastAPI dependency: db: Session = Depends(get_db)
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
