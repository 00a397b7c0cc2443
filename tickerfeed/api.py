from datetime import date
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, UploadFile
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from tickerfeed.config import get_settings
from tickerfeed.constants import F_NAME, F_RPT_DT, F_TCKR_SYMB, F_UPLOADED_AT, UPLOAD_OK_MESSAGE
from .database import get_db
from .service import UploadService

router = APIRouter()

ALLOWED_EXTENSIONS = (".csv", ".txt")


def get_upload_service(request: Request, db: Session = Depends(get_db)) -> UploadService:
    """Build an UploadService bound to this request's DB session.

    The cache and file storage are process-wide and live on `app.state`.
    """
    return UploadService(
        db=db,
        storage=request.app.state.storage,
        cache=request.app.state.cache,
        settings=get_settings(),
    )


def drop_missing(filters: dict) -> dict:
    return {k: v for k, v in filters.items() if v is not None}


@router.get("/health")
def health():
    """Healthcheck endpoint.

    Returns:
        dict: simple status payload.
    """
    return {"status": "ok"}


@router.post("/upload", status_code=201)
def upload_file(
    file: UploadFile = File(...),
    service: UploadService = Depends(get_upload_service),
):
    """Ingest an uploaded CSV and record it in the upload ledger.

    Returns:
        201 with the ledger entry, or 400 with the underlying error message.
    """
    if not file.filename or not file.filename.lower().endswith(ALLOWED_EXTENSIONS):
        raise HTTPException(status_code=422, detail="file must be a .csv or .txt file")
    result = service.ingest(file.filename, file.file)
    if not result.success:
        return JSONResponse(status_code=400, content={"message": result.message})
    return {"message": UPLOAD_OK_MESSAGE, "data": result.upload}


@router.get("/upload/history")
def upload_history(
    name: Optional[str] = None,
    uploaded_at: Optional[date] = None,
    service: UploadService = Depends(get_upload_service),
):
    """Return upload ledger entries (cached; see Settings.history_cache_ttl).

    Args:
        name: optional exact file name.
        uploaded_at: optional upload date (YYYY-MM-DD).
    """
    return service.history(drop_missing({F_NAME: name, F_UPLOADED_AT: uploaded_at}))


@router.get("/upload/search")
def search_file_content(
    TckrSymb: Optional[str] = None,
    RptDt: Optional[str] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    service: UploadService = Depends(get_upload_service),
):
    """Search ingested rows by ticker and/or report date.

    A request without either filter gets 200 with `{"success": false, ...}`.
    """
    return service.search(drop_missing({F_TCKR_SYMB: TckrSymb, F_RPT_DT: RptDt}), page=page)
