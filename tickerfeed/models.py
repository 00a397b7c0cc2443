from datetime import datetime

from sqlalchemy import String, Integer, DateTime, func
from sqlalchemy.orm import Mapped, mapped_column
from .database import Base
from tickerfeed.constants import TBL_FILE_CONTENTS, TBL_UPLOADS


class FileContent(Base):
    """One ingested CSV data row. Nothing is unique: re-ingesting duplicates rows."""
    __tablename__ = TBL_FILE_CONTENTS
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    RptDt: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    TckrSymb: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    MktNm: Mapped[str | None] = mapped_column(String, nullable=True)
    SctyCtgyNm: Mapped[str | None] = mapped_column(String, nullable=True)
    ISIN: Mapped[str | None] = mapped_column(String, nullable=True)
    CrpnNm: Mapped[str | None] = mapped_column(String, nullable=True)


class Upload(Base):
    __tablename__ = TBL_UPLOADS
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, nullable=False, index=True)
    hash: Mapped[str] = mapped_column(String(64), nullable=False, index=True)  # SHA-256 hex
    path: Mapped[str] = mapped_column(String, nullable=False)
    uploaded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
