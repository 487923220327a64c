"""Content-addressed CI failure signatures.

A signature lets the triage loop recognize that the same failure happened
again across independent runs. It depends only on the timed-out flag and the
set of failing checks, never on their order.
"""

from __future__ import annotations

import logging
from enum import IntEnum

from pydantic import BaseModel, ConfigDict

from citriage.triage.models import CiFailureEntry, CiRunObservation

from .redaction import normalize_excerpt

logger = logging.getLogger(__name__)

FNV_OFFSET_BASIS = 2166136261
FNV_PRIME = 16777619
_UINT32_MASK = 0xFFFFFFFF

FIELD_SEPARATOR = "\x1f"
RECORD_SEPARATOR = "\x1e"

_FIELD_ESCAPES = str.maketrans({"\\": "\\\\", FIELD_SEPARATOR: "\\x1f", RECORD_SEPARATOR: "\\x1e"})


class SignatureVersion(IntEnum):
    """Coexisting signature algorithms."""

    v2 = 2  # raw excerpts
    v3 = 3  # clipped then redacted excerpts


class SignatureComponent(BaseModel):
    """One normalized failure tuple as it was fed to the hash."""

    model_config = ConfigDict(frozen=True)

    name: str
    raw_state: str
    excerpt_fingerprint: str | None = None


class CiFailureSignature(BaseModel):
    """Signature of a CI run plus the normalized components behind it."""

    model_config = ConfigDict(frozen=True)

    version: SignatureVersion
    signature: str
    timed_out: bool
    components: list[SignatureComponent]


def fnv1a_hex(text: str) -> str:
    """32-bit FNV-1a over the UTF-8 bytes of ``text``, as 8 lowercase hex digits."""
    value = FNV_OFFSET_BASIS
    for byte in text.encode("utf-8"):
        value ^= byte
        value = (value * FNV_PRIME) & _UINT32_MASK
    return f"{value:08x}"


def _escape_field(value: str) -> str:
    return value.translate(_FIELD_ESCAPES)


def _normalize_entry(entry: CiFailureEntry, version: SignatureVersion) -> tuple[str, str, str]:
    if version is SignatureVersion.v3:
        excerpt = normalize_excerpt(entry.excerpt)
    else:
        excerpt = entry.excerpt or ""
    return entry.name.strip(), entry.raw_state.strip(), excerpt


def build_signature(
    observation: CiRunObservation,
    version: SignatureVersion | int = SignatureVersion.v3,
) -> CiFailureSignature:
    """
    Compute the order-independent signature of ``observation``.

    Tuples are sorted by name, then raw state, then the (normalized) excerpt,
    so any permutation of ``observation.failures`` hashes identically.
    Raises ``ValueError`` for an unknown ``version``.
    """
    version = SignatureVersion(version)
    entries = sorted(_normalize_entry(entry, version) for entry in observation.failures)

    # Separators inside a field are escaped so one failure never reads as two.
    records = [FIELD_SEPARATOR.join(_escape_field(field) for field in entry) for entry in entries]
    payload = RECORD_SEPARATOR.join(["1" if observation.timed_out else "0", *records])
    signature = fnv1a_hex(payload)

    logger.debug(
        "SignatureBuilt version=%d signature=%s failure_count=%d timed_out=%s",
        version,
        signature,
        len(entries),
        observation.timed_out,
    )

    return CiFailureSignature(
        version=version,
        signature=signature,
        timed_out=observation.timed_out,
        components=[
            SignatureComponent(
                name=name,
                raw_state=raw_state,
                excerpt_fingerprint=fnv1a_hex(excerpt) if excerpt else None,
            )
            for name, raw_state, excerpt in entries
        ],
    )
