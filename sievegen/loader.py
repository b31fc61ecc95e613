"""Reading the config and prefix files, writing the compiled script."""

import json
import logging
from pathlib import Path

from sievegen.schemas.config import DomainConfig, SieveConfigError

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_NAME = "filter.sieve"


def parse_sieve_config(raw: object) -> list[DomainConfig]:
    """Decode ``{domain: {options?, folder: node, ...}}`` in file order."""
    if not isinstance(raw, dict):
        raise SieveConfigError("Sieve config must be an object of domains")
    return [DomainConfig.from_raw(domain, domain_raw) for domain, domain_raw in raw.items()]


def read_sieve_config(path: str | Path) -> list[DomainConfig]:
    """Load and decode a sieve config JSON file.

    Raises:
        FileNotFoundError: If the file does not exist.
        OSError: If the file cannot be read.
        UnicodeDecodeError: If the file is not UTF-8.
        json.JSONDecodeError: If the file is not valid JSON.
        SieveConfigError: If the content does not describe a valid config.
    """
    path = Path(path)
    domains = parse_sieve_config(json.loads(path.read_text(encoding="utf-8")))
    logger.info("Loaded sieve config from %s: %d domain(s)", path, len(domains))
    return domains


def read_prefix(path: str | Path) -> str:
    """Return the prefix script, or an empty string if the file is missing."""
    path = Path(path)
    if not path.is_file():
        logger.info("Prefix file not found at %s, using empty prefix", path)
        return ""
    return path.read_text(encoding="utf-8")


def resolve_output_path(path: str | Path) -> Path:
    """An existing directory receives ``filter.sieve`` inside it."""
    path = Path(path)
    if path.is_dir():
        return path / DEFAULT_OUTPUT_NAME
    return path


def write_output(path: str | Path, content: str) -> Path:
    """Write the compiled script and return the path actually written."""
    target = resolve_output_path(path)
    target.write_text(content, encoding="utf-8")
    logger.info("Wrote %d byte(s) to %s", len(content.encode()), target)
    return target
