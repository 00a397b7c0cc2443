"""Source-encoding detection and UTF-8 normalization for CSV exports.

Files are opened with ``errors="surrogateescape"`` so bytes the chosen codec
cannot decode survive as lone surrogates (U+DC80..U+DCFF) instead of being
replaced. `to_utf8` turns such cells back into bytes and decodes them with
strict UTF-8, then the detected codec, then the Western fallbacks.
"""
import codecs
import logging
import re

import chardet

from tickerfeed.constants import ENCODING_MIN_CONFIDENCE, ENCODING_SAMPLE_BYTES, FALLBACK_ENCODINGS

logger = logging.getLogger(__name__)

_ESCAPED_BYTE = re.compile("[\udc80-\udcff]")


def is_utf8(sample: bytes) -> bool:
    """True if `sample` is valid UTF-8, allowing a sequence cut off at the end."""
    try:
        codecs.getincrementaldecoder("utf-8")().decode(sample, final=False)
    except UnicodeDecodeError:
        return False
    return True


def detect_encoding(sample: bytes) -> str:
    """Best-effort guess of the codec of a byte sample.

    Valid UTF-8 (including plain ASCII) is reported as UTF-8. Anything else
    goes to chardet, and to the first Western fallback when chardet is not
    confident or names a codec Python does not know.
    """
    if not sample or is_utf8(sample):
        return "utf-8"
    detected = chardet.detect(sample)
    encoding = (detected.get("encoding") or "").lower()
    confidence = detected.get("confidence") or 0
    if not encoding or confidence < ENCODING_MIN_CONFIDENCE or encoding in ("ascii", "utf-8"):
        return FALLBACK_ENCODINGS[0]
    try:
        codecs.lookup(encoding)
    except LookupError:
        return FALLBACK_ENCODINGS[0]
    return encoding


def sniff_file_encoding(path: str) -> str:
    with open(path, "rb") as f:
        sample = f.read(ENCODING_SAMPLE_BYTES)
    encoding = detect_encoding(sample)
    logger.debug("Detected encoding %s for %s", encoding, path)
    return encoding


def decode_bytes(raw: bytes, hint: str | None = None) -> str:
    """Decode with the first codec that accepts all of `raw`.

    Order: UTF-8, `hint`, then FALLBACK_ENCODINGS. latin-1 maps every byte,
    so this never fails.
    """
    for encoding in dict.fromkeys(("utf-8", hint or "utf-8", *FALLBACK_ENCODINGS)):
        try:
            return raw.decode(encoding)
        except UnicodeDecodeError:
            continue
    return raw.decode("latin-1")


def to_utf8(value: str | bytes, source_encoding: str = "utf-8") -> str:
    """Return `value` as clean UTF-8 text.

    Args:
        value: bytes, or text read with `source_encoding` and surrogateescape.
        source_encoding: codec the text was decoded with; used to recover
            the original bytes of cells that carry escaped bytes.
    """
    if isinstance(value, bytes):
        return decode_bytes(value, hint=detect_encoding(value))
    if _ESCAPED_BYTE.search(value):
        try:
            raw = value.encode(source_encoding, errors="surrogateescape")
        except UnicodeEncodeError:
            raw = None
        if raw is not None:
            return decode_bytes(raw, hint=source_encoding)
    return value.encode("utf-8", errors="replace").decode("utf-8")
