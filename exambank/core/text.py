"""Text repair helpers for question content coming from upload paths."""
import logging
from urllib.parse import unquote

logger = logging.getLogger(__name__)

# Lead bytes of UTF-8 sequences when misread as Latin-1/cp1252 ("Ã©", "â€™")
MOJIBAKE_MARKERS = ("Ã", "Â", "â€")


def percent_decode(text: str) -> str:
    """
    Decode percent-encoded UTF-8 text until it stops changing.

    Upload paths have been seen encoding text twice, so a single unquote is not
    enough. Every successful pass shortens the text, which bounds the loop.
    """
    decoded = text
    while "%" in decoded:
        try:
            candidate = unquote(decoded, encoding="utf-8", errors="strict")
        except UnicodeDecodeError:
            logger.debug(f"Leaving text with undecodable percent escapes as-is: {decoded[:50]!r}")
            break
        if candidate == decoded:
            break
        decoded = candidate
    return decoded


def _repair_once(text: str) -> str:
    for encoding in ("cp1252", "latin-1"):
        try:
            return text.encode(encoding).decode("utf-8")
        except (UnicodeEncodeError, UnicodeDecodeError):
            continue
    return text


def repair_mojibake(text: str) -> str:
    """Undo UTF-8 text that was decoded as Latin-1 somewhere upstream."""
    repaired = text
    while any(marker in repaired for marker in MOJIBAKE_MARKERS):
        candidate = _repair_once(repaired)
        if candidate == repaired:
            break
        repaired = candidate
    return repaired


def decode_text(text: str | None) -> str:
    """
    Normalize question/option text to clean UTF-8.

    Args:
        text: Raw text as stored or uploaded (may be None)

    Returns:
        Decoded text, or an empty string for missing input
    """
    if not text:
        return ""
    return repair_mojibake(percent_decode(text))


def is_blank(text: str | None) -> bool:
    return text is None or not text.strip()
