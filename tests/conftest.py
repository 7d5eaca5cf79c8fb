import sys
from pathlib import Path
from typing import Iterator

import pytest

# Keep the repository free of Python bytecode and __pycache__ artifacts during tests.
sys.dont_write_bytecode = True

TESTS_ROOT = Path(__file__).resolve().parent
REPO_ROOT = TESTS_ROOT.parent
SRC_ROOT = REPO_ROOT / "src"

# Make src/ importable as 'vendorsync' and tests/ as 'helpers'
for p in (SRC_ROOT, TESTS_ROOT):
    if str(p) not in sys.path:
        sys.path.insert(0, str(p))


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep developer settings from leaking into tests."""
    monkeypatch.delenv("VENDORSYNC_CACHE_DIR", raising=False)
    monkeypatch.delenv("HGRCPATH", raising=False)
    yield
    from vendorsync.core.logging_setup import reset_logging_for_tests

    reset_logging_for_tests()


@pytest.fixture
def temp_area(tmp_path: Path):
    """TempArea rooted inside the test's tmp dir."""
    from vendorsync.core.fetch.temp import TempArea

    return TempArea(tmp_path / ".vendorsync-tmp")
