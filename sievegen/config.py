"""Single source of truth for sievegen defaults.

Values come from an optional dotenv file (``SIEVEGEN_ENV_FILE``, default
``sievegen.env`` in the working directory); process environment wins.
"""

import os
from pathlib import Path

from dotenv import dotenv_values

ENV_PREFIX = "SIEVEGEN_"


def _load(path: Path) -> dict[str, str | None]:
    """Merge the dotenv file (if any) with the process environment."""
    values = dict(dotenv_values(path)) if path.is_file() else {}
    values.update({k: v for k, v in os.environ.items() if k.startswith(ENV_PREFIX)})
    return values


def _flag(value: str | None) -> bool:
    """Only a case-insensitive ``true`` enables a flag."""
    return (value or "false").strip().lower() == "true"


ENV_FILE = Path(os.environ.get("SIEVEGEN_ENV_FILE", "sievegen.env"))

_settings = _load(ENV_FILE)

CONFIG_PATH: str = _settings.get("SIEVEGEN_CONFIG_PATH") or "sieve.config.json"
PREFIX_PATH: str = _settings.get("SIEVEGEN_PREFIX_PATH") or "prefix.sieve"
OUTPUT_PATH: str = _settings.get("SIEVEGEN_OUTPUT_PATH") or "filter.sieve"
FORCE_DOMAIN_FOLDER: bool = _flag(_settings.get("SIEVEGEN_FORCE_DOMAIN_FOLDER"))
