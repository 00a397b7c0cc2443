from datetime import date
from math import ceil
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from tickerfeed.constants import DEFAULT_PER_PAGE, NO_FILTER_MESSAGE
from .models import FileContent, Upload
from .schemas import FileContentOut, NoFilterResult, Page, SearchResult, UploadOut


def query_upload_history(
    db: Session,
    name: Optional[str] = None,
    uploaded_at: Optional[date | str] = None,
) -> list[Upload]:
    """Query the upload ledger with optional filters.

    Args:
        db: SQLAlchemy Session.
        name: exact original file name.
        uploaded_at: calendar date (or "YYYY-MM-DD"); time of day is ignored.

    Returns:
        List[Upload]: newest first.
    """
    stmt = select(Upload)
    if name is not None:
        stmt = stmt.where(Upload.name == name)
    if uploaded_at is not None:
        day = uploaded_at.isoformat() if isinstance(uploaded_at, date) else uploaded_at
        stmt = stmt.where(func.date(Upload.uploaded_at) == day)
    stmt = stmt.order_by(Upload.uploaded_at.desc(), Upload.id.desc())
    return list(db.execute(stmt).scalars().all())


def search_file_content(
    db: Session,
    tckr_symb: Optional[str] = None,
    rpt_dt: Optional[str] = None,
    page: int = 1,
    per_page: int = DEFAULT_PER_PAGE,
) -> SearchResult:
    """Search ingested rows by ticker and/or report date.

    Args:
        db: SQLAlchemy Session.
        tckr_symb: exact TckrSymb match.
        rpt_dt: exact RptDt match (compared as stored text).
        page: 1-based page number.
        per_page: rows per page.

    Returns:
        NoFilterResult when neither filter is given, otherwise a Page.
    """
    stmt = select(FileContent)
    has_valid_filter = False
    if tckr_symb is not None:
        stmt = stmt.where(FileContent.TckrSymb == tckr_symb)
        has_valid_filter = True
    if rpt_dt is not None:
        stmt = stmt.where(FileContent.RptDt == rpt_dt)
        has_valid_filter = True

    if not has_valid_filter:
        return NoFilterResult(message=NO_FILTER_MESSAGE)

    total = db.execute(select(func.count()).select_from(stmt.subquery())).scalar_one()
    page = max(page, 1)
    items = db.execute(
        stmt.order_by(FileContent.id).offset((page - 1) * per_page).limit(per_page)
    ).scalars().all()
    return Page(
        total=total,
        current_page=page,
        per_page=per_page,
        last_page=max(1, ceil(total / per_page)),
        data=[FileContentOut.model_validate(x) for x in items],
    )


def to_upload_dict(u: Upload) -> dict:
    """Convert an Upload ORM object to a JSON-ready dict, safe to cache across sessions."""
    return UploadOut.model_validate(u).model_dump(mode="json")
