# --- Source dataset column names (CSV headers, also the stored column names) ---
F_RPT_DT = "RptDt"
F_TCKR_SYMB = "TckrSymb"
F_MKT_NM = "MktNm"
F_SCTY_CTGY_NM = "SctyCtgyNm"
F_ISIN = "ISIN"
F_CRPN_NM = "CrpnNm"

# --- Upload ledger field names ---
F_NAME = "name"
F_UPLOADED_AT = "uploaded_at"

# Exhaustive projection of a normalized record onto the file_contents table
FILE_CONTENT_FIELDS = [
    F_RPT_DT,
    F_TCKR_SYMB,
    F_MKT_NM,
    F_SCTY_CTGY_NM,
    F_ISIN,
    F_CRPN_NM,
]

# --- CSV parsing ---
SEMICOLON = ";"
COMMA = ","
QUOTE_CHAR = '"'
ENCODING_SAMPLE_BYTES = 10000
ENCODING_MIN_CONFIDENCE = 0.7
# Tried in order once strict UTF-8 and the detected codec have failed
FALLBACK_ENCODINGS = ("cp1252", "latin-1")
HASH_BLOCK_SIZE = 8192

# --- Defaults (overridable through settings) ---
DEFAULT_CHUNK_SIZE = 500
DEFAULT_PER_PAGE = 10
DEFAULT_HISTORY_CACHE_KEY = "upload-history"
DEFAULT_HISTORY_CACHE_TTL = 600
UPLOAD_DIR = "uploads"

NO_FILTER_MESSAGE = (
    "No valid filter provided. Please provide at least one of the filters: "
    "TckrSymb or RptDt."
)
UPLOAD_OK_MESSAGE = "Upload successful"

# --- Table names ---
TBL_FILE_CONTENTS = "file_contents"
TBL_UPLOADS = "uploads"

__all__ = [
    "F_RPT_DT",
    "F_TCKR_SYMB",
    "F_MKT_NM",
    "F_SCTY_CTGY_NM",
    "F_ISIN",
    "F_CRPN_NM",
    "F_NAME",
    "F_UPLOADED_AT",
    "FILE_CONTENT_FIELDS",
    "SEMICOLON",
    "COMMA",
    "QUOTE_CHAR",
    "ENCODING_SAMPLE_BYTES",
    "ENCODING_MIN_CONFIDENCE",
    "FALLBACK_ENCODINGS",
    "HASH_BLOCK_SIZE",
    "DEFAULT_CHUNK_SIZE",
    "DEFAULT_PER_PAGE",
    "DEFAULT_HISTORY_CACHE_KEY",
    "DEFAULT_HISTORY_CACHE_TTL",
    "UPLOAD_DIR",
    "NO_FILTER_MESSAGE",
    "UPLOAD_OK_MESSAGE",
    "TBL_FILE_CONTENTS",
    "TBL_UPLOADS",
]
