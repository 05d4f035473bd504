"""
Privacy Redaction

Deterministic regex redactor applied to user text before it is logged,
persisted, or sent to the content generator. No name detection.
"""

import re
from dataclasses import dataclass, field

from src.schemas.base import PrivacyRisk

DEFAULT_MAX_CHARS = 280

# Order matters: each pattern runs on the output of the previous ones, so
# structured identifiers are replaced before the looser phone pattern.
_BUCKETS: list[tuple[str, re.Pattern[str], str]] = [
    ("url", re.compile(r"https?://\S+|www\.\S+", re.IGNORECASE), "[URL]"),
    ("email", re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}"), "[EMAIL]"),
    (
        "iban",
        re.compile(r"\b[A-Z]{2}\d{2}\s?\d{4}\s?\d{4}\s?\d{4}\s?\d{4}\s?\d{0,4}\b", re.IGNORECASE),
        "[IBAN]",
    ),
    (
        "uuid",
        re.compile(r"\b[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}\b", re.IGNORECASE),
        "[ID]",
    ),
    ("card", re.compile(r"\b\d{4}[\s.-]?\d{4}[\s.-]?\d{4}[\s.-]?\d{4}\b|\b\d{13,19}\b"), "[CARD]"),
    ("ip", re.compile(r"\b\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}\b"), "[IP]"),
    (
        "phone",
        re.compile(r"\+?\d[\d\s\-().]{8,18}\d\b|\b\d{2}[\s.-]\d{2}[\s.-]\d{2}[\s.-]\d{2}[\s.-]\d{2}\b"),
        "[PHONE]",
    ),
    ("handle", re.compile(r"@[a-zA-Z0-9_]+"), "[HANDLE]"),
]


@dataclass
class RedactionResult:
    text: str
    hits: dict[str, int] = field(default_factory=dict)
    risk: PrivacyRisk = PrivacyRisk.NONE
    truncated: bool = False

    @property
    def total_hits(self) -> int:
        return sum(self.hits.values())


def _risk_for(count: int) -> PrivacyRisk:
    if count >= 3:
        return PrivacyRisk.HIGH
    if count >= 1:
        return PrivacyRisk.MEDIUM
    return PrivacyRisk.NONE


def redact(text: str, max_chars: int = DEFAULT_MAX_CHARS) -> RedactionResult:
    """
    Replace PII-like spans with bucket placeholders and truncate.

    Risk is derived from the total number of hits across all buckets:
    three or more is high, one or more is medium.
    """
    hits: dict[str, int] = {}
    redacted = text or ""
    for key, pattern, replacement in _BUCKETS:
        redacted, count = pattern.subn(replacement, redacted)
        if count:
            hits[key] = count

    truncated = False
    if len(redacted) > max_chars:
        redacted = redacted[:max_chars] + "…"
        truncated = True

    return RedactionResult(
        text=redacted,
        hits=hits,
        risk=_risk_for(sum(hits.values())),
        truncated=truncated,
    )
