"""Pytest configuration for vsac-service tests."""

from __future__ import annotations

from pathlib import Path

import pytest
from dotenv import load_dotenv

from helpers import FIXTURES
from vsac_service.config import VsacConfig

# Load a local .env so the live VSAC tests can find UMLS_API_KEY.
load_dotenv()


@pytest.fixture()
def config(tmp_path: Path) -> VsacConfig:
    """Default endpoints, cache under the test's tmp dir."""
    return VsacConfig(cache_dir=tmp_path / "vsac_cache")


@pytest.fixture()
def snapshot_file() -> Path:
    return FIXTURES / "valueset-db.json"
