"""Reads ``CITRIAGE_*`` service settings from a local .env file.

The file is only read, never exported: the process environment is left as it
is, and :mod:`citriage.config` decides which source wins.
"""

from __future__ import annotations

from pathlib import Path

ENV_FILE_NAME = ".env"
SETTINGS_PREFIX = "CITRIAGE_"


def _parse_line(raw_line: str) -> tuple[str, str] | None:
    line = raw_line.strip()
    if not line or line.startswith("#"):
        return None
    key, sep, value = line.removeprefix("export ").partition("=")
    key, value = key.strip(), value.strip()
    if not sep or not key.startswith(SETTINGS_PREFIX):
        return None
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        value = value[1:-1]
    return key, value


def find_env_file(start: Path | None = None) -> Path | None:
    """Nearest .env file from ``start`` (default: cwd) upward, or None."""
    start = start or Path.cwd()
    for base in [start, *start.parents]:
        candidate = base / ENV_FILE_NAME
        if candidate.is_file():
            return candidate
    return None


def read_dotenv(start: Path | None = None) -> dict[str, str]:
    """
    Return the ``CITRIAGE_*`` assignments of the nearest .env file.

    Unrelated keys, comments and malformed lines are skipped; a later
    assignment of the same key wins. No file means an empty mapping.
    """
    env_path = find_env_file(start)
    if env_path is None:
        return {}

    values: dict[str, str] = {}
    for raw_line in env_path.read_text(encoding="utf-8").splitlines():
        parsed = _parse_line(raw_line)
        if parsed is not None:
            key, value = parsed
            values[key] = value
    return values
