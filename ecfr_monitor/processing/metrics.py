"""
Size metrics for eCFR title snapshots.

Only sizes and a short fingerprint are derived here; the regulatory text is
never parsed structurally.
"""
import hashlib
import re
from functools import singledispatch

from ..core.models import RawContent, SnapshotMetrics, StructuralSummary

FINGERPRINT_LENGTH = 12

_TAG_PATTERN = re.compile(r"<[^>]*>")
_WHITESPACE_PATTERN = re.compile(r"\s+")


def clean_text(markup: str) -> str:
    """Replace tags with spaces and collapse whitespace."""
    text = _TAG_PATTERN.sub(" ", markup)
    return _WHITESPACE_PATTERN.sub(" ", text).strip()


def count_words(text: str) -> int:
    """Count space-separated tokens in already cleaned text."""
    if not text:
        return 0
    return len(text.split(" "))


def fingerprint(text: str) -> str:
    """Truncated SHA-256 of the text, for display and integrity checks."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()[:FINGERPRINT_LENGTH]


@singledispatch
def extract_metrics(payload) -> SnapshotMetrics:
    """Derive snapshot metrics from a fetched payload."""
    raise TypeError(f"Unsupported payload type: {type(payload).__name__}")


@extract_metrics.register
def _(payload: RawContent) -> SnapshotMetrics:
    if not payload.text:
        return SnapshotMetrics(byte_size=0, word_count=0)

    text = clean_text(payload.text)
    return SnapshotMetrics(
        byte_size=len(payload.text.encode("utf-8")),
        word_count=count_words(text),
        fingerprint=fingerprint(text) if text else None,
    )


@extract_metrics.register
def _(payload: StructuralSummary) -> SnapshotMetrics:
    # The reported size is authoritative; no text is available to count or hash.
    return SnapshotMetrics(byte_size=payload.reported_size)
