from __future__ import annotations

import pathlib
import sys

import pytest

REPO_ROOT = pathlib.Path(__file__).resolve().parents[1]

if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from apps.price_mcp.config import Settings  # noqa: E402
from tests.helpers.upstream import FakeUpstream  # noqa: E402


@pytest.fixture(scope="session")
def repo_root() -> pathlib.Path:
    return REPO_ROOT


@pytest.fixture
def settings() -> Settings:
    return Settings(api_key="test-key")


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()
