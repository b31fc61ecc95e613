"""Shared fixtures for sievegen tests."""

import json

import pytest


@pytest.fixture()
def config_file(tmp_path):
    """Return a function writing a sieve config JSON file and returning its path."""

    def _write(data, name: str = "sieve.config.json"):
        path = tmp_path / name
        path.write_text(json.dumps(data, indent=2))
        return path

    return _write
