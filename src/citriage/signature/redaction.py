"""Excerpt normalization applied before a v3 signature is hashed.

Two passes, always in this order:

1. :func:`clip_excerpt` keeps at most :data:`EXCERPT_MAX_CHARS` characters from
   the start. Anything past the bound is dropped outright, secrets included.
2. :func:`redact_secrets` masks credential-shaped tokens still inside the
   retained window with :data:`REDACTION_MARKER`.
"""

from __future__ import annotations

import logging
import re

logger = logging.getLogger(__name__)

EXCERPT_MAX_CHARS: int = 2000

REDACTION_MARKER: str = "<REDACTED_SECRET>"

BEARER_TOKEN_PATTERN = re.compile(r"(?i)\b(bearer\s+)[A-Za-z0-9\-._~+/]{8,}=*")
GITHUB_TOKEN_PATTERN = re.compile(r"\b(?:gh[pousr]_[A-Za-z0-9]{20,}|github_pat_[A-Za-z0-9_]{20,})")
API_KEY_PATTERN = re.compile(r"\bsk-(?:[A-Za-z0-9]+-)?[A-Za-z0-9]{20,}")
AWS_ACCESS_KEY_PATTERN = re.compile(r"(?i)\bAKIA[0-9A-Z]{16}\b")
TOKEN_ASSIGNMENT_PATTERN = re.compile(
    r"(?i)(\b(?:secret|token|api[_-]?key|password|access[_-]?key)\b\s*[:=]\s*[\"']?)"
    r"([A-Za-z0-9/+=._-]{16,})([\"']?)"
)
PRIVATE_KEY_PATTERN = re.compile(
    r"-----BEGIN [A-Z ]*PRIVATE KEY-----[\s\S]+?-----END [A-Z ]*PRIVATE KEY-----",
    flags=re.MULTILINE,
)


def clip_excerpt(excerpt: str, max_chars: int = EXCERPT_MAX_CHARS) -> str:
    """Return at most ``max_chars`` leading characters of ``excerpt``."""
    if len(excerpt) <= max_chars:
        return excerpt
    return excerpt[:max_chars]


def redact_secrets(content: str) -> tuple[str, int]:
    """Mask known credential patterns and return clean content plus redaction count."""
    redaction_count = 0
    cleaned = content

    cleaned, count = PRIVATE_KEY_PATTERN.subn(REDACTION_MARKER, cleaned)
    redaction_count += count

    def _prefix_replacer(match: re.Match[str]) -> str:
        return f"{match.group(1)}{REDACTION_MARKER}"

    cleaned, count = BEARER_TOKEN_PATTERN.subn(_prefix_replacer, cleaned)
    redaction_count += count

    for pattern in (GITHUB_TOKEN_PATTERN, API_KEY_PATTERN, AWS_ACCESS_KEY_PATTERN):
        cleaned, count = pattern.subn(REDACTION_MARKER, cleaned)
        redaction_count += count

    def _assignment_replacer(match: re.Match[str]) -> str:
        prefix = match.group(1)
        suffix = match.group(3)
        return f"{prefix}{REDACTION_MARKER}{suffix}"

    cleaned, count = TOKEN_ASSIGNMENT_PATTERN.subn(_assignment_replacer, cleaned)
    redaction_count += count

    return cleaned, redaction_count


def normalize_excerpt(excerpt: str | None) -> str:
    """Clip then redact an excerpt. ``None`` becomes the empty string."""
    if not excerpt:
        return ""
    clipped = clip_excerpt(excerpt)
    redacted, count = redact_secrets(clipped)
    if count:
        logger.debug("ExcerptRedacted count=%d", count)
    return redacted
