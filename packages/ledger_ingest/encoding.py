"""Best-effort text decoding for bank/card exports.

Japanese institutions still ship Shift-JIS (cp932) exports while e-wallets and
re-saved files are UTF-8. :func:`detect_and_decode` never raises: when no
candidate decodes cleanly the bytes are decoded as UTF-8 with replacement
characters and the result is flagged ``ambiguous``. Garbled cells are left for
the source classifier and row parser to reject.
"""

from __future__ import annotations

import codecs
from dataclasses import dataclass

from .logging_setup import get_logger

_logger = get_logger("ledger_ingest.encoding")

# Config labels → Python codec names. cp932 is the Windows superset of
# Shift-JIS that bank exports actually use (NEC/IBM extension characters).
_ALIASES: dict[str, str] = {
    "shift-jis": "cp932",
    "shift_jis": "cp932",
    "shiftjis": "cp932",
    "sjis": "cp932",
    "s-jis": "cp932",
    "cp932": "cp932",
    "ms932": "cp932",
    "windows-31j": "cp932",
    "euc-jp": "euc_jp",
    "eucjp": "euc_jp",
    "utf8": "utf-8",
    "utf-8": "utf-8",
    "utf-8-sig": "utf-8-sig",
}

_BOMS: tuple[tuple[bytes, str], ...] = (
    (codecs.BOM_UTF8, "utf-8-sig"),
    (codecs.BOM_UTF16_LE, "utf-16"),
    (codecs.BOM_UTF16_BE, "utf-16"),
)


@dataclass(frozen=True, slots=True)
class DecodedText:
    """Decoded file content plus the codec that produced it (advisory)."""

    text: str
    encoding: str
    ambiguous: bool = False


def normalize_encoding(label: str | None) -> str | None:
    """Map a config encoding label to a Python codec name, or ``None``."""

    if label is None:
        return None
    key = label.strip().lower()
    if not key:
        return None
    if key in _ALIASES:
        return _ALIASES[key]
    try:
        return codecs.lookup(key).name
    except LookupError:
        _logger.warning("unknown encoding label %r; ignoring hint", label)
        return None


def _try_decode(data: bytes, codec: str) -> str | None:
    try:
        return data.decode(codec)
    except (UnicodeDecodeError, LookupError):
        return None


def _shift_jis_lead_bytes(data: bytes) -> int:
    """Count bytes in 0x81-0x9F, which start Shift-JIS pairs but never EUC-JP ones."""

    return sum(1 for b in data if 0x81 <= b <= 0x9F and b not in (0x8E, 0x8F))


def detect_and_decode(data: bytes, hint: str | None = None) -> DecodedText:
    """Decode ``data`` using BOMs, the optional ``hint`` and byte heuristics.

    Order: BOM, hint (unless the bytes are clearly UTF-8 multibyte text),
    strict UTF-8, cp932/EUC-JP ordered by a lead-byte heuristic, and finally
    UTF-8 with replacement.
    """

    if not data:
        return DecodedText("", "utf-8")

    for bom, codec in _BOMS:
        if data.startswith(bom):
            text = _try_decode(data, codec)
            if text is not None:
                return DecodedText(text, codec)

    utf8_text = _try_decode(data, "utf-8")
    codec_hint = normalize_encoding(hint)

    if codec_hint and codec_hint not in ("utf-8", "utf-8-sig"):
        if utf8_text is not None and not data.isascii():
            # Legacy-encoded source that was re-saved as UTF-8.
            _logger.debug("hint %s overridden: content is valid UTF-8", codec_hint)
            return DecodedText(utf8_text, "utf-8")
        text = _try_decode(data, codec_hint)
        if text is not None:
            return DecodedText(text, codec_hint)

    if utf8_text is not None:
        return DecodedText(utf8_text, "utf-8")

    candidates = ["cp932", "euc_jp"] if _shift_jis_lead_bytes(data) else ["euc_jp", "cp932"]
    for codec in candidates:
        text = _try_decode(data, codec)
        if text is not None:
            return DecodedText(text, codec)

    _logger.warning("encoding detection inconclusive; decoding as UTF-8 with replacement")
    return DecodedText(data.decode("utf-8", errors="replace"), "utf-8", ambiguous=True)


__all__ = ["DecodedText", "normalize_encoding", "detect_and_decode"]
