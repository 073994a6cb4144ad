import sys
from pathlib import Path

import pytest

# Ensure 'src' directory is on sys.path for tests
PROJECT_ROOT = Path(__file__).resolve().parent
SRC_DIR = PROJECT_ROOT / 'src'
if SRC_DIR.exists() and str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))


async def _no_sleep(_seconds: float) -> None:
    return None


@pytest.fixture
def no_sleep():
    """Drop-in for ``asyncio.sleep`` that returns immediately."""
    return _no_sleep


@pytest.fixture(autouse=True)
def _isolated(monkeypatch, tmp_path):
    from pyhyprconfig import events

    monkeypatch.setenv("HYPRCONFIG_HOME", str(tmp_path / "home"))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    monkeypatch.delenv("HYPRCONFIG_DEBUG", raising=False)
    events.clear()
    yield
    events.clear()
