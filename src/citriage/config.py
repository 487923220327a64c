"""Service settings read from the environment."""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, Field

from citriage.env import read_dotenv
from citriage.signature.fingerprint import SignatureVersion
from citriage.triage.models import DEFAULT_SIGNATURE_VERSION

DEFAULT_MAX_ATTEMPTS = 5


class ServiceSettings(BaseModel):
    """Defaults the HTTP surface applies when a request leaves them out."""

    signature_version: SignatureVersion = Field(default=SignatureVersion(DEFAULT_SIGNATURE_VERSION))
    max_attempts: int = Field(default=DEFAULT_MAX_ATTEMPTS, ge=1)

    @classmethod
    def from_env(cls, start: Path | None = None) -> ServiceSettings:
        """
        Build settings from ``CITRIAGE_*`` variables.

        A variable set in the process environment wins over the same key in
        the nearest .env file.
        """
        source = {**read_dotenv(start), **os.environ}
        values: dict[str, object] = {}
        if raw := source.get("CITRIAGE_SIGNATURE_VERSION"):
            raw = raw.strip()
            values["signature_version"] = int(raw) if raw.isdigit() else raw
        if raw := source.get("CITRIAGE_MAX_ATTEMPTS"):
            values["max_attempts"] = raw.strip()
        return cls.model_validate(values)
