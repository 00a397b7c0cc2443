import io
import re
from datetime import timedelta
from pathlib import Path

from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from conftest import write_export
from tickerfeed import persist, service as service_module
from tickerfeed.constants import ENCODING_SAMPLE_BYTES
from tickerfeed.errors import HashError
from tickerfeed.models import FileContent, Upload
from tickerfeed.schemas import NoFilterResult, Page

ROWS = [
    {"TckrSymb": "PETR4", "RptDt": "2024-06-03", "MktNm": "EQUITY-CASH"},
    {"TckrSymb": "VALE3", "RptDt": "2024-06-03", "MktNm": "EQUITY-CASH"},
    {"TckrSymb": "ITUB4", "RptDt": "2024-06-03", "MktNm": "EQUITY-CASH"},
]


def count(session, model):
    return session.execute(select(func.count()).select_from(model)).scalar_one()


def test_ingest_semicolon_export_end_to_end(make_service, db_session, tmp_path):
    svc = make_service()
    path = write_export(tmp_path / "instruments.csv", ROWS)
    result = svc.ingest_path(path)

    assert result.success is True
    assert re.fullmatch(r"[0-9a-f]{64}", result.upload.hash)
    assert result.upload.name == "instruments.csv"

    stored = db_session.execute(select(FileContent).order_by(FileContent.id)).scalars().all()
    assert [r.TckrSymb for r in stored] == ["PETR4", "VALE3", "ITUB4"]
    assert all(r.MktNm == "EQUITY-CASH" for r in stored)
    assert all(r.SctyCtgyNm is None and r.ISIN is None and r.CrpnNm is None for r in stored)
    assert count(db_session, Upload) == 1


def test_ingest_uploaded_file_is_stored(make_service, tmp_path):
    svc = make_service()
    data = Path(write_export(tmp_path / "src.csv", ROWS, sep=",")).read_bytes()
    result = svc.ingest("daily.csv", io.BytesIO(data))
    assert result.success is True
    assert result.upload.path == "uploads/daily.csv"
    assert (tmp_path / "storage" / "uploads" / "daily.csv").read_bytes() == data


def test_reingest_same_file_duplicates_rows(make_service, db_session, tmp_path):
    svc = make_service()
    path = write_export(tmp_path / "instruments.csv", ROWS)
    first = svc.ingest_path(path)
    second = svc.ingest_path(path)
    assert first.success and second.success
    assert count(db_session, FileContent) == 6
    assert count(db_session, Upload) == 2
    assert first.upload.hash == second.upload.hash


def test_duplicate_rejected_when_configured(make_service, db_session, tmp_path):
    svc = make_service(reject_duplicate_uploads=True)
    path = write_export(tmp_path / "instruments.csv", ROWS)
    assert svc.ingest_path(path).success is True
    result = svc.ingest_path(path)
    assert result.success is False
    assert "already ingested" in result.message
    assert count(db_session, FileContent) == 3


def test_missing_header_fails_without_side_effects(make_service, db_session, tmp_path):
    svc = make_service()
    p = tmp_path / "banner_only.csv"
    p.write_text("Cadastro de Instrumentos;\n")
    result = svc.ingest_path(str(p))
    assert result.success is False
    assert result.message
    assert count(db_session, FileContent) == 0
    assert count(db_session, Upload) == 0


def test_missing_file_fails(make_service, tmp_path):
    result = make_service().ingest_path(str(tmp_path / "nope.csv"))
    assert result.success is False
    assert "nope.csv" in result.message


def test_chunk_failure_rolls_back_everything(make_service, db_session, tmp_path, monkeypatch):
    svc = make_service(chunk_size=1)
    calls = []
    real_insert = persist.insert_chunk

    def failing_insert(session, chunk):
        calls.append(1)
        if len(calls) == 3:
            raise OperationalError("INSERT INTO file_contents", {}, Exception("database is locked"))
        real_insert(session, chunk)

    monkeypatch.setattr(persist, "insert_chunk", failing_insert)
    result = svc.ingest_path(write_export(tmp_path / "instruments.csv", ROWS))
    assert result.success is False
    assert "database is locked" in result.message
    assert count(db_session, FileContent) == 0
    assert count(db_session, Upload) == 0


def test_ledger_failure_keeps_committed_rows(make_service, db_session, tmp_path, monkeypatch):
    svc = make_service()

    def broken_hash(path):
        raise HashError(f"Could not read {path} for hashing")

    monkeypatch.setattr(service_module, "compute_file_hash", broken_hash)
    result = svc.ingest_path(write_export(tmp_path / "instruments.csv", ROWS))
    assert result.success is False
    assert "hashing" in result.message
    assert count(db_session, FileContent) == 3
    assert count(db_session, Upload) == 0


def test_history_is_cached_regardless_of_filters(make_service, tmp_path, monkeypatch, clock):
    svc = make_service()
    svc.ingest_path(write_export(tmp_path / "a.csv", ROWS))

    calls = []
    real_query = service_module.query_upload_history

    def counting_query(*args, **kwargs):
        calls.append(kwargs)
        return real_query(*args, **kwargs)

    monkeypatch.setattr(service_module, "query_upload_history", counting_query)
    first = svc.history({"name": "a.csv"})
    svc.ingest_path(write_export(tmp_path / "b.csv", ROWS))
    second = svc.history({"name": "a.csv"})
    other = svc.history({"name": "b.csv"})

    assert len(calls) == 1
    assert [u["name"] for u in first] == ["a.csv"]
    assert second == first
    assert other == first  # same cache key for every filter combination

    clock.advance(600)
    fresh = svc.history({"name": "b.csv"})
    assert len(calls) == 2
    assert [u["name"] for u in fresh] == ["b.csv"]


def test_history_filters_by_upload_date(make_service, tmp_path):
    svc = make_service(history_cache_ttl=0)
    result = svc.ingest_path(write_export(tmp_path / "a.csv", ROWS))
    today = result.upload.uploaded_at.date()

    assert [u["name"] for u in svc.history({"uploaded_at": today})] == ["a.csv"]
    assert [u["name"] for u in svc.history({"uploaded_at": today.isoformat()})] == ["a.csv"]
    assert svc.history({"uploaded_at": "1999-01-01"}) == []
    assert svc.history({}) != []


def test_search_without_filters(make_service):
    result = make_service().search({})
    assert isinstance(result, NoFilterResult)
    assert result.success is False
    assert result.message


def test_search_by_ticker_and_date(make_service, tmp_path):
    svc = make_service()
    rows = [{"TckrSymb": "PETR4", "RptDt": f"2024-06-{d:02d}"} for d in range(1, 16)]
    svc.ingest_path(write_export(tmp_path / "a.csv", rows + ROWS))

    page = svc.search({"TckrSymb": "PETR4"})
    assert isinstance(page, Page)
    assert page.per_page == 10
    assert page.current_page == 1
    assert page.total == 16
    assert page.last_page == 2
    assert len(page.data) == 10

    second = svc.search({"TckrSymb": "PETR4"}, page=2)
    assert len(second.data) == 6

    both = svc.search({"TckrSymb": "PETR4", "RptDt": "2024-06-03"})
    assert both.total == 2
    assert {r.TckrSymb for r in both.data} == {"PETR4"}

    by_date = svc.search({"RptDt": "2024-06-03"})
    assert by_date.total == 4


def test_ingest_latin1_export_stores_exact_names(make_service, db_session, tmp_path):
    svc = make_service()
    rows = [
        {"TckrSymb": "PETR4", "RptDt": "2024-06-03", "CrpnNm": "PETRÓLEO BRASILEIRO S.A."},
        {"TckrSymb": "ELET3", "RptDt": "2024-06-03", "CrpnNm": "CENTRAIS ELÉTRICAS BRASILEIRAS"},
    ]
    result = svc.ingest_path(write_export(tmp_path / "latin1.csv", rows, encoding="latin-1"))
    assert result.success is True
    names = db_session.execute(select(FileContent.CrpnNm).order_by(FileContent.id)).scalars().all()
    assert names == ["PETRÓLEO BRASILEIRO S.A.", "CENTRAIS ELÉTRICAS BRASILEIRAS"]


def test_ingest_cp1252_accents_past_the_encoding_sample(make_service, db_session, tmp_path):
    svc = make_service()
    rows = [{"TckrSymb": "VALE3", "RptDt": "2024-06-03", "CrpnNm": "VALE S.A. MINERACAO ORDINARIA"}] * 400
    rows += [
        {"TckrSymb": "SBSP3", "RptDt": "2024-06-03", "CrpnNm": "COMPANHIA DE SANEAMENTO BÁSICO DE SÃO PAULO"},
        {"TckrSymb": "CNST3", "RptDt": "2024-06-03", "CrpnNm": "CONSTRUÇÕES – PARTICIPAÇÕES"},
    ]
    path = write_export(tmp_path / "cp1252.csv", rows, encoding="cp1252")
    assert Path(path).stat().st_size > ENCODING_SAMPLE_BYTES

    result = svc.ingest_path(path)
    assert result.success is True
    stored = dict(db_session.execute(
        select(FileContent.TckrSymb, FileContent.CrpnNm).where(FileContent.TckrSymb.in_(["SBSP3", "CNST3"]))
    ).all())
    assert stored == {
        "SBSP3": "COMPANHIA DE SANEAMENTO BÁSICO DE SÃO PAULO",
        "CNST3": "CONSTRUÇÕES – PARTICIPAÇÕES",
    }


def test_upload_timestamps_are_utc_everywhere(make_service, tmp_path):
    svc = make_service(history_cache_ttl=0)
    result = svc.ingest_path(write_export(tmp_path / "a.csv", ROWS))
    listed = svc.history({"name": "a.csv"})[0]
    assert result.upload.uploaded_at.utcoffset() == timedelta(0)
    assert listed["uploaded_at"] == result.upload.model_dump(mode="json")["uploaded_at"]
