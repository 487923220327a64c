"""Failure signature builder."""

from .fingerprint import (
    CiFailureSignature,
    SignatureComponent,
    SignatureVersion,
    build_signature,
    fnv1a_hex,
)
from .redaction import EXCERPT_MAX_CHARS, REDACTION_MARKER, clip_excerpt, redact_secrets

__all__ = [
    "EXCERPT_MAX_CHARS",
    "REDACTION_MARKER",
    "CiFailureSignature",
    "SignatureComponent",
    "SignatureVersion",
    "build_signature",
    "clip_excerpt",
    "fnv1a_hex",
    "redact_secrets",
]
