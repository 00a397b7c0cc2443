from datetime import datetime, timezone
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, field_validator


class UploadOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    hash: str
    path: str
    uploaded_at: datetime

    @field_validator("uploaded_at")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        # SQLite hands timestamps back without an offset; they are stored as UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class FileContentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    RptDt: Optional[str] = None
    TckrSymb: Optional[str] = None
    MktNm: Optional[str] = None
    SctyCtgyNm: Optional[str] = None
    ISIN: Optional[str] = None
    CrpnNm: Optional[str] = None


class Page(BaseModel):
    """One page of file_contents rows with length-aware pagination metadata."""
    total: int
    current_page: int
    per_page: int
    last_page: int
    data: list[FileContentOut]


class NoFilterResult(BaseModel):
    """Returned instead of a Page when a search carries no usable filter."""
    success: Literal[False] = False
    message: str


SearchResult = Union[NoFilterResult, Page]


class IngestResult(BaseModel):
    success: bool
    upload: Optional[UploadOut] = None
    message: Optional[str] = None
